import argparse

from e2e.runner import constants
from e2e.runner.models import RunOptions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Runs e2e tests")
    parser.add_argument(
        "--browsers",
        type=str,
        help="Run only the specified browser tests. Options are `chrome`, `firefox`, `safari`.",
    )
    parser.add_argument(
        "--config",
        choices=constants.CONFIG_VARIANTS,
        default=constants.DEFAULT_CONFIG,
        help='Sets the runtime config to one of "prod" (default) or "canary"',
    )
    parser.add_argument(
        "--nobuild",
        action="store_true",
        help="Skips building the runtime before testing",
    )
    parser.add_argument(
        "--files",
        type=str,
        help="Run tests found in a specific path (ex: **/test-e2e/test_*.py)",
    )
    parser.add_argument(
        "--testnames",
        action="store_true",
        help="Lists the name of each test being run",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Watches for changes in files, runs corresponding test(s)",
    )
    parser.add_argument(
        "--engine",
        choices=constants.ENGINES,
        default=constants.DEFAULT_ENGINE,
        help=(
            "The automation engine that orchestrates the browser. "
            f"Options are `playwright` or `selenium`. Default: `{constants.DEFAULT_ENGINE}`"
        ),
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Runs the browser in headless mode",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Prints debugging information while running tests",
    )
    return parser


def parse_args(argv=None):
    return build_parser().parse_args(argv)


def to_options(args) -> RunOptions:
    return RunOptions(
        browsers=args.browsers,
        engine=args.engine,
        headless=bool(args.headless),
        config=args.config,
        nobuild=bool(args.nobuild),
        files=args.files,
        testnames=bool(args.testnames),
        watch=bool(args.watch),
        debug=bool(args.debug),
    )
