"""
Configuración del logging estructurado de skillrules.

Dos pipelines independientes:
1. Archivo (JSON): si config.file está configurado. Captura todo (DEBUG+).
2. Consola (stderr): nivel según -v, o config.level si no hay -v.

Los comandos `hook` se ejecutan con quiet=True: su stdout y stderr son del
protocolo de hooks del host, así que solo queda activo el archivo.
"""

import logging
import sys
from pathlib import Path

import structlog

from ..config.schema import LoggingConfig

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(config: LoggingConfig, quiet: bool = False) -> None:
    """Configura stdlib logging y structlog.

    Args:
        config: Configuración de logging (level, file, verbose)
        quiet: Si True, no se añade el handler de consola (hooks)
    """
    # Limpiar configuración anterior
    logging.root.handlers.clear()
    structlog.reset_defaults()

    # Root logger captura todo, los handlers filtran por nivel
    logging.basicConfig(level=logging.DEBUG, format="%(message)s", handlers=[])

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    console_renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # ── Pipeline 1: Archivo JSON ──────────────────────────────────────────
    file_handler = None
    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(log_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    # ── Pipeline 2: Consola ───────────────────────────────────────────────
    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_console_level(config))
        if file_handler:
            console_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=console_renderer,
                    foreign_pre_chain=shared_processors,
                )
            )
        logging.root.addHandler(console_handler)
    elif not file_handler:
        # Sin ningún handler, stdlib escribiría los warnings en stderr
        logging.root.addHandler(logging.NullHandler())

    # Con archivo, el render final lo hace cada handler
    last = (
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter
        if file_handler
        else console_renderer
    )
    structlog.configure(
        processors=shared_processors + [structlog.processors.format_exc_info, last],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _console_level(config: LoggingConfig) -> int:
    """Nivel del handler de consola.

    -v   → INFO
    -vv  → DEBUG
    sin -v → config.level (warn por defecto)
    """
    if config.verbose >= 2:
        return logging.DEBUG
    if config.verbose == 1:
        return logging.INFO
    return _LEVELS[config.level]
