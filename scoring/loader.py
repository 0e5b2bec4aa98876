"""
YAML loading for criteria sets
"""
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .base import Criterion, Reduction, validate_criteria
from config import load_yaml_file
from exceptions import InvalidConfiguration
from logger import get_logger

logger = get_logger(__name__)


def load_scoring_config(path: Union[str, Path]) -> Tuple[List[Criterion], Optional[Reduction]]:
    """
    Load criteria and an optional reduction from a YAML file

    The document is either a list of criteria or a mapping:

        reduction: average
        criteria:
          - {name: kw, weight: 2, evaluator_kind: keyword_presence, keywords: [urgent]}

    Raises:
        InvalidConfiguration: If the file or any criterion is invalid
    """
    document = load_yaml_file(path)

    reduction = None
    if isinstance(document, dict):
        if document.get("reduction") is not None:
            reduction = Reduction.parse(document["reduction"])
        entries = document.get("criteria") or []
    else:
        entries = document

    if not isinstance(entries, list):
        raise InvalidConfiguration(f"Criteria in {path} must be a list", field="criteria")

    criteria = [Criterion.from_dict(entry) for entry in entries]
    validate_criteria(criteria)
    logger.info(f"Loaded {len(criteria)} criteria from {path}")
    return criteria, reduction


def load_criteria(path: Union[str, Path]) -> List[Criterion]:
    """Load just the criteria list from a YAML file"""
    criteria, _ = load_scoring_config(path)
    return criteria
