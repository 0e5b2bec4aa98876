"""
YAML loading for extraction configs
"""
from pathlib import Path
from typing import Union

from .base import ExtractionConfig
from config import load_yaml_file
from logger import get_logger

logger = get_logger(__name__)


def load_extraction_config(path: Union[str, Path]) -> ExtractionConfig:
    """
    Load an ExtractionConfig from a YAML file

    The document uses the same keys as ExtractionConfig.from_dict:

        enabled_classes: [EMAIL, URL]
        heuristics_enabled: true
        dictionaries:
          ORG: [Acme Corp, Globex]
        custom_rules:
          - {name: ticket, pattern: 'TICKET-\\d+', entity_type: TICKET}
    """
    config = ExtractionConfig.from_dict(load_yaml_file(path))
    logger.info(
        f"Loaded extraction config from {path}: {len(config.dictionaries)} dictionaries, "
        f"{len(config.custom_rules)} custom rules"
    )
    return config
