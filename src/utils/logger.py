import os
import sys

from loguru import logger


def setup_logger(
    *,
    json_logs: bool = False,
    level: str = "INFO",
    log_dir: str = "logs",
    file_logs: bool = True,
) -> None:
    """Configure loguru for the curve service and CLIs.

    Console level controlled by LOG_LEVEL env (default: INFO).
    The file sink keeps DEBUG so a failed migration can be reconstructed
    from the step-by-step trace.
    """
    console_level = os.getenv("LOG_LEVEL", level).upper()
    logger.remove()

    if json_logs:
        logger.add(sys.stdout, serialize=True, level=console_level)
    else:
        logger.add(
            sys.stdout,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level>"
            ),
            level=console_level,
            colorize=True,
        )

    if not file_logs:
        return

    logger.add(
        f"{log_dir}/launchpad_{{time:YYYY-MM-DD}}.log",
        rotation="50 MB",
        retention="7 days",
        compression="gz",
        level="DEBUG",
        serialize=json_logs,
    )
