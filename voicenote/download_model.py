"""Download the configured recognition model ahead of first use."""

import sys

from voicenote.asr.engines import create_engine, is_model_cached
from voicenote.asr.types import DecodeParams
from voicenote.config.config_loader import config
from voicenote.utils.logger import setup_logger

logger = setup_logger(__name__)


def download_model() -> bool:
    """Load the configured model once so it lands in the local cache.

    Returns:
        True if the model is available afterwards.
    """
    model = config.get("asr.model")
    if is_model_cached(model):
        logger.info(f"Model already cached: {model}")
        return True

    logger.info(f"Downloading model: {model}")
    logger.info("The model will be cached for future use")
    try:
        context = create_engine().load_model(model, DecodeParams())
    except Exception as e:
        logger.error(f"Failed to download model: {e}")
        return False

    context.release()
    logger.info("Model downloaded and cached successfully")
    return True


def main() -> None:
    sys.exit(0 if download_model() else 1)


if __name__ == "__main__":
    main()
