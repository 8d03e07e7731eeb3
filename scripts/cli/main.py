"""CLI main: configure, bootstrap, run the transfer loop, map outcomes to exit codes."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from scripts.cli import config as cli_config
from scripts.cli.bootstrap import create_accounts_table
from scripts.cli.prompts import PromptRequestSource
from scripts.cli.util import enable_quiet_logging, print_exception_chain, restore_logging
from scripts.cli.views import BalanceTableReporter, show_accounts
from transfer_config import get_active_config
from transfer_config.bridges import build_classifier, build_retry_policy, seed_balances
from transfer_kernel.db.engine import get_session, init_engine_from_url, reset_engine
from transfer_kernel.domain.sleeper import SystemSleeper
from transfer_kernel.exceptions import StoreError, TransferCancelledError, TransferError
from transfer_kernel.logging_config import attach_file_handler, configure_logging, get_logger
from transfer_kernel.services.retry_executor import RetryingTransactionExecutor
from transfer_kernel.services.transactional_resource import SessionResource
from transfer_kernel.services.transfer_workflow import TransferWorkflow

logger = get_logger("cli.main")

EXIT_OK = 0
EXIT_STORE_FAILURE = 1
EXIT_INTERRUPTED = 2
EXIT_OTHER_ERROR = 3


def exit_code_for(exc: BaseException) -> int:
    """Map a terminal failure to the process exit code."""
    if isinstance(exc, (TransferCancelledError, KeyboardInterrupt)):
        return EXIT_INTERRUPTED
    if isinstance(exc, (StoreError, TransferError, SQLAlchemyError)):
        return EXIT_STORE_FAILURE
    return EXIT_OTHER_ERROR


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Transfer money between accounts with serializable transactions."
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--database-url", default=None, help="overrides database.url")
    parser.add_argument("--max-retries", type=int, default=None)
    parser.add_argument("--retry-delay-ms", type=int, default=None)
    parser.add_argument(
        "--no-bootstrap",
        action="store_true",
        help="keep the existing accounts table instead of recreating it",
    )
    parser.add_argument("--log-file", type=Path, default=cli_config.LOG_FILE)
    return parser.parse_args(argv)


def run(
    args: argparse.Namespace,
    input_fn: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> int:
    """Run one interactive session.  Terminal failures propagate."""
    config = get_active_config(
        args.config,
        database_url=args.database_url or cli_config.DB_URL,
        max_retries=args.max_retries,
        retry_delay_ms=args.retry_delay_ms,
    )

    out("Connecting to the database...")
    init_engine_from_url(config.database.url, echo=config.database.echo)
    out("connected.")

    resource = SessionResource(get_session())
    try:
        if not args.no_bootstrap:
            create_accounts_table(resource.session, seed_balances(config))
            out("Table created.")
        show_accounts(resource.session, out)

        policy = build_retry_policy(config)
        executor = RetryingTransactionExecutor(
            classifier=build_classifier(config),
            sleeper=SystemSleeper(),
            policy=policy,
        )
        workflow = TransferWorkflow(
            resource,
            executor,
            PromptRequestSource(input_fn, out),
            reporter=BalanceTableReporter(resource.session, out),
            policy=policy,
        )
        workflow.run()
    finally:
        resource.close()

    out("Finished, exiting")
    return EXIT_OK


def main(
    argv: list[str] | None = None,
    input_fn: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
) -> int:
    args = parse_args(argv)
    # Console handler installed now and muted for the session; the file gets everything.
    configure_logging()
    muted = enable_quiet_logging()
    file_handler = attach_file_handler(args.log_file)
    logger.info("transfer_cli_starting", extra={"log_path": str(args.log_file)})

    try:
        return run(args, input_fn, out)
    except SystemExit:
        raise
    except BaseException as exc:
        code = exit_code_for(exc)
        if code == EXIT_INTERRUPTED:
            out("Exiting because of user interrupt")
        elif code == EXIT_STORE_FAILURE:
            out(f"Failed because of database problem: {exc}")
            print_exception_chain(exc, out)
        else:
            out(f"Failed because of error: {exc}")
        logger.error("transfer_cli_failed", extra={"exit_code": code}, exc_info=True)
        return code
    finally:
        logging.getLogger("transfer_kernel").removeHandler(file_handler)
        file_handler.close()
        restore_logging(muted)
        reset_engine()


if __name__ == "__main__":
    sys.exit(main())
