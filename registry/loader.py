"""
Airdrop Commitment Builder - Category Input Loading

Reads the per-category JSON input files. Each file is a JSON array of objects;
claim categories carry ``{address, value}`` and the faucet ``{address, shares}``.
"""

import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, ValidationError

from .exceptions import InputFileError
from .manager import CategoryDescriptor, get_category


logger = logging.getLogger(__name__)


def load_category(input_dir: Union[str, Path], category) -> List[BaseModel]:
    """
    Load and validate one category input file.

    Args:
        input_dir: Directory holding the category files
        category: Category name or descriptor

    Returns:
        Validated records in file order

    Raises:
        InputFileError: If the file is missing, is not valid JSON, is not an
            array, or contains a record that fails validation
    """
    descriptor: CategoryDescriptor = get_category(category)
    path = Path(input_dir) / descriptor.file_name

    if not path.is_file():
        raise InputFileError(path, "file not found")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputFileError(path, f"invalid JSON: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise InputFileError(path, f"cannot read file: {e}") from e

    if not isinstance(data, list):
        raise InputFileError(path, f"expected a JSON array, got {type(data).__name__}")

    records = []
    for index, item in enumerate(data):
        try:
            records.append(descriptor.record_model.model_validate(item))
        except ValidationError as e:
            raise InputFileError(path, f"record {index} is malformed: {e}") from e

    logger.debug(f"Loaded {len(records)} records from {path}")
    return records
