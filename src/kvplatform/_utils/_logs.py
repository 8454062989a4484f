import logging
import sys

logger = logging.getLogger("kvplatform")


def setup_logging(debug: bool = False) -> None:
    """Attach a stream handler to the ``kvplatform`` logger once."""
    if not any(getattr(h, "_kvplatform", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        handler._kvplatform = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if debug else logging.INFO)
