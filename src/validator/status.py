"""Readiness marker files."""

import logging
import os
import shutil

logger = logging.getLogger(__name__)


def prepare_output_dir(output_dir, cleanup_all=False):
    """Create the status directory, wiping it first when cleanup is requested."""
    if cleanup_all:
        try:
            shutil.rmtree(output_dir)
            logger.info(f"Removed previous validation status directory {output_dir}")
        except FileNotFoundError:
            pass
    os.makedirs(output_dir, mode=0o755, exist_ok=True)


def clear(path):
    """Remove a status file; a missing file is not an error."""
    try:
        os.remove(path)
        logger.debug(f"Removed status file {path}")
    except FileNotFoundError:
        pass
    except OSError as e:
        raise OSError(f"unable to remove status file {path}: {e}") from e


def publish(path, content=""):
    """Create (or truncate) a status file, optionally writing content."""
    try:
        with open(path, "w") as f:
            if content:
                f.write(content)
    except OSError as e:
        raise OSError(f"unable to create status file {path}: {e}") from e
    logger.info(f"Created status file {path}")

