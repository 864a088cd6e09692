from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from detectgate.models.assessment import Assessment

logger = structlog.get_logger('storage')


def load_assessments(filepath: str | Path) -> list[Assessment]:
    """
    Load risk-acceptance records from a YAML file.

    The file either holds a top-level list of assessments or a mapping with
    the list under `ignore`. A missing file means no assessments.

    Raises:
        ValueError if the file is not valid YAML or an entry is malformed
    """
    path = Path(filepath)
    if not path.exists():
        logger.info('No assessment file found', path=str(path))
        return []

    try:
        with path.open(encoding='utf-8') as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get('ignore') or []
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of assessments in {path}")

    assessments = []
    for index, entry in enumerate(data):
        try:
            assessments.append(Assessment.model_validate(entry))
        except ValidationError as e:
            raise ValueError(f"Invalid assessment #{index} in {path}: {e}") from e

    logger.info('Loaded assessments', path=str(path), count=len(assessments))
    return assessments
