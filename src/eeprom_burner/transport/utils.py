import time
import contextlib
import logging
import sys
from typing import Optional

def format_rate(size: int, elapsed: float) -> str:
    """Human-readable transfer rate, in bytes, KiB or MiB per second."""
    bytes_per_second = size / elapsed if elapsed > 0 else 0.0
    if bytes_per_second >= 1024 * 1024:
        return f"{bytes_per_second / (1024 * 1024):.2f} MiB/s"
    if bytes_per_second >= 1024:
        return f"{bytes_per_second / 1024:.2f} KiB/s"
    return f"{bytes_per_second:.0f} B/s"

@contextlib.contextmanager
def transfer_timer(logger: logging.Logger, operation_name: str = "Transfer",
                   data_size: Optional[int] = None,
                   log_level: int = logging.INFO,
                   cleanup_progress: bool = False):
    """
    Context manager timing a burner operation and logging its data rate.

    Args:
        logger: Logger instance to use for output
        operation_name: Name of the operation being timed (e.g., "Read", "Write")
        data_size: Optional number of bytes moved, enables the rate figure
        log_level: Logging level to use for the timing message
        cleanup_progress: If True, ends the progress line on stdout before logging

    Example:
        with transfer_timer(log, "Read", length, cleanup_progress=True):
            exit_code = engine.run()
    """
    start_time = time.monotonic()
    try:
        yield
    finally:
        elapsed_time = time.monotonic() - start_time

        if cleanup_progress:
            sys.stdout.write("\n")
            sys.stdout.flush()

        message = f"{operation_name} completed in {elapsed_time:.2f} seconds"
        if data_size and elapsed_time > 0:
            message += f" ({format_rate(data_size, elapsed_time)})"
        logger.log(log_level, message)
