#!/usr/bin/env python3
"""
Mapping Profile Loading

Reads mapping profiles from JSON or YAML and validates them rule by rule.
Profiles are often machine-generated, so an invalid top-level rule is
dropped and reported instead of rejecting the whole profile (unless strict).
"""

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from ..models.models import MappingProfile, MappingRule, ProfileLoadReport, ProfileSummary, SkippedRule

logger = logging.getLogger(__name__)

PROFILE_SUFFIXES = (".json", ".yaml", ".yml")

_rule_adapter = TypeAdapter(MappingRule)


class MappingProfileError(Exception):
    """Raised when a mapping profile cannot be read or is structurally invalid."""
    pass


def _summarize_validation_error(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail.get("loc", ()))
        message = detail.get("msg", "invalid")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def load_profile_from_dict(data: Any, strict: bool = False) -> ProfileLoadReport:
    """Validate a profile document.

    Args:
        data: Parsed profile (name, schemaNamespace, rootElement, description, mappings)
        strict: Raise on the first invalid rule instead of skipping it

    Returns:
        ProfileLoadReport with the validated profile and any skipped rules

    Raises:
        MappingProfileError: If the envelope is invalid, or a rule is invalid in strict mode
    """
    if not isinstance(data, dict):
        raise MappingProfileError("Profile must be an object")

    mappings = data.get("mappings")
    if not isinstance(mappings, list):
        raise MappingProfileError("Profile 'mappings' must be a list of rules")

    envelope = {k: v for k, v in data.items() if k != "mappings"}
    try:
        profile = MappingProfile.model_validate({**envelope, "mappings": []})
    except ValidationError as e:
        raise MappingProfileError(f"Invalid profile: {_summarize_validation_error(e)}") from e

    rules = []
    skipped = []
    for index, raw_rule in enumerate(mappings):
        try:
            rules.append(_rule_adapter.validate_python(raw_rule))
        except ValidationError as e:
            target = raw_rule.get("target") if isinstance(raw_rule, dict) else None
            error = _summarize_validation_error(e)
            if strict:
                raise MappingProfileError(f"Invalid rule #{index} ({target}): {error}") from e

            logger.warning(
                f"Skipping invalid rule #{index} ({target}) in profile '{profile.name}': {error}",
                extra={"profile_name": profile.name, "rule_target": target},
            )
            skipped.append(SkippedRule(index=index, target=target if isinstance(target, str) else None, error=error))

    profile.mappings = rules
    logger.debug(f"Loaded profile '{profile.name}' with {len(rules)} rules ({len(skipped)} skipped)")
    return ProfileLoadReport(profile=profile, skipped=skipped)


def parse_profile_text(text: str | bytes, suffix: str = ".json") -> Any:
    """Parse profile text as JSON, or YAML for .yaml/.yml."""
    try:
        if suffix.lower() in (".yaml", ".yml"):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise MappingProfileError(f"Profile is not valid {suffix.lstrip('.').upper()}: {e}") from e


def load_profile(path: str | Path, strict: bool = False) -> ProfileLoadReport:
    """Load a profile file (JSON or YAML by suffix)."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MappingProfileError(f"Cannot read profile {path}: {e}") from e

    report = load_profile_from_dict(parse_profile_text(text, path.suffix), strict=strict)
    logger.info(f"Loaded profile '{report.profile.name}' from {path.name}", extra={"file_name": path.name})
    return report


def load_profiles_from_dir(directory: str | Path, strict: bool = False) -> list[tuple[Path, ProfileLoadReport]]:
    """Load every profile in a directory, sorted by file name.

    Files that cannot be read or validated are logged and skipped; with
    strict, so is any file containing an invalid rule.
    """
    directory = Path(directory)
    loaded = []
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix.lower() not in PROFILE_SUFFIXES:
            continue
        try:
            loaded.append((path, load_profile(path, strict=strict)))
        except MappingProfileError as e:
            logger.error(f"Skipping profile file {path.name}: {e}", extra={"file_name": path.name})

    logger.info(f"Loaded {len(loaded)} profiles from {directory}")
    return loaded


def summarize_profile(profile: MappingProfile, source_file: str | None = None) -> ProfileSummary:
    return ProfileSummary(
        name=profile.name,
        schemaNamespace=profile.schemaNamespace,
        rootElement=profile.rootElement,
        description=profile.description,
        ruleCount=len(profile.mappings),
        source_file=source_file,
    )
