"""
NFT Ledger — process entrypoint.

1. Configures structured logging
2. Builds the ledger from settings
3. Attaches the event journal when a database is configured
4. Serves the explorer/operator API

    python -m nft_ledger.orchestrator
"""

from __future__ import annotations

import logging
import sys

import structlog
import uvicorn

from nft_ledger.config import LedgerSettings, settings

logger = logging.getLogger(__name__)


def configure_logging(config: LedgerSettings = settings) -> None:
    """Configure structured logging."""
    level = logging.getLevelName(config.log_level.upper())
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer()
                if config.log_format != "json"
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_services(config: LedgerSettings = settings):
    """Build the ledger and, if configured, its event journal."""
    from nft_ledger.ledger.journal import EventJournal
    from nft_ledger.ledger.service import TokenLedger

    log = structlog.get_logger()

    ledger = TokenLedger.from_settings(config)
    log.info(
        "nft_ledger.orchestrator.ledger_ready",
        name=config.name,
        symbol=config.symbol,
        max_token_id=config.max_token_id,
        admin=config.admin_principal,
    )

    journal = None
    if config.database_url:
        journal = EventJournal(config.database_url)
        journal.initialize()
        ledger.subscribe(journal.record)
        is_valid, entries, msg = journal.verify_chain()
        log.info(
            "nft_ledger.orchestrator.journal_ready",
            entries=entries,
            chain_valid=is_valid,
        )
        if not is_valid:
            log.critical("nft_ledger.orchestrator.integrity_failure", message=msg)

    return ledger, journal


def main() -> None:
    configure_logging()
    log = structlog.get_logger()
    log.info("nft_ledger.orchestrator.starting")

    try:
        ledger, journal = build_services()

        from nft_ledger.dashboard.app import app, state as api_state

        api_state.ledger = ledger
        api_state.journal = journal

        log.info(
            "nft_ledger.orchestrator.running",
            host=settings.api_host,
            port=settings.api_port,
        )
        uvicorn.run(app, host=settings.api_host, port=settings.api_port)
    except KeyboardInterrupt:
        log.info("nft_ledger.orchestrator.shutdown")
    except Exception as e:
        log.exception("nft_ledger.orchestrator.fatal_error", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
