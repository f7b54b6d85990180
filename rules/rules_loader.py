import logging
import os
import yaml
from typing import Any, Dict, Iterable, List, Optional

from core.errors import ConfigError
from models.evidence import Category
from models.marker import CHECK_TYPES, MarkerCheck, MarkerRule

logger = logging.getLogger(__name__)


def _parse_check(check_data: Dict[str, Any]) -> MarkerCheck:
    check_type = check_data.get("type")
    if check_type not in CHECK_TYPES:
        raise ValueError(f"unknown check type {check_type!r}")

    check = MarkerCheck(
        type=check_type,
        path=check_data.get("path"),
        variable=check_data.get("variable"),
        contains=check_data.get("contains"),
        confidence=float(check_data.get("confidence", 0.5)),
    )
    if check.type in ("file_exists", "file_contains") and not check.path:
        raise ValueError(f"{check.type} check needs a path")
    if check.type == "file_contains" and not check.contains:
        raise ValueError("file_contains check needs 'contains'")
    if check.type == "env_set" and not check.variable:
        raise ValueError("env_set check needs a variable")
    if not 0.0 <= check.confidence <= 1.0:
        raise ValueError(f"confidence {check.confidence} outside [0.0, 1.0]")
    return check


def parse_rules(rules_data: Optional[Iterable[Dict[str, Any]]], origin: str = "config") -> List[MarkerRule]:
    """
    Build MarkerRules from already-parsed YAML data, skipping invalid entries.
    """
    rules: List[MarkerRule] = []
    for rule_data in rules_data or []:
        if not isinstance(rule_data, dict) or not all(k in rule_data for k in ["name", "category", "value", "checks"]):
            logger.warning(f"Skipping invalid marker rule in {origin}: {rule_data}")
            continue

        try:
            name = str(rule_data["name"]).strip()
            value = str(rule_data["value"]).strip()
            if not name:
                raise ValueError("rule name must not be empty")
            if not value:
                raise ValueError("rule value must not be empty")
            rules.append(
                MarkerRule(
                    name=name,
                    category=Category(rule_data["category"]),
                    value=value,
                    checks=[_parse_check(c) for c in rule_data["checks"]],
                    priority=int(rule_data.get("priority", 50)),
                )
            )
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping marker rule {rule_data.get('name')!r} in {origin}: {e}")
    return rules


def load_rules(rules_dir: str) -> List[MarkerRule]:
    """
    Loads marker rules from all .yaml files in a directory.
    """
    rules: List[MarkerRule] = []
    try:
        filenames = sorted(os.listdir(rules_dir))
    except OSError as e:
        raise ConfigError(f"cannot read rules directory {rules_dir}: {e}") from e

    for filename in filenames:
        if filename.endswith(".yaml") or filename.endswith(".yml"):
            filepath = os.path.join(rules_dir, filename)
            try:
                with open(filepath, "r") as f:
                    rules_data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"invalid YAML in {filepath}: {e}") from e
            except OSError as e:
                raise ConfigError(f"cannot read {filepath}: {e}") from e
            if not rules_data:
                continue
            if not isinstance(rules_data, list):
                logger.warning(f"Skipping {filepath}: expected a list of marker rules")
                continue
            rules.extend(parse_rules(rules_data, origin=filename))

    logger.debug(f"Loaded {len(rules)} marker rules from {rules_dir}")
    return rules
