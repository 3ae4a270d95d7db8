#!/usr/bin/env python3

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator

# Pydantic Models

# Mapping rules: one model per rule kind, discriminated by "type".
# ArrayRule.fields refers back to MappingRule, so arrays nest to any depth.

SCALAR_TYPES = ("string", "number", "integer", "boolean", "date")
ARRAY_MARKER = "[]"


class RuleBase(BaseModel):
    target: str

    @model_validator(mode="after")
    def check_array_marker(self):
        if self.target.endswith(ARRAY_MARKER) and self.type != "array":
            raise ValueError(f"target '{self.target}' ends with '[]' but rule type is '{self.type}', not 'array'")
        return self


class ScalarRule(RuleBase):
    type: Literal["string", "number", "integer", "boolean", "date"]
    source: str | None = None


class ArrayRule(RuleBase):
    type: Literal["array"]
    source: str | None = None  # None iterates the context element itself
    fields: list["MappingRule"] = []


class AsFoundAsLeftRule(RuleBase):
    """Reads isAsFound/isAsLeft on the context element; source is accepted but unused."""
    type: Literal["asFoundAsLeft"]
    source: str | None = None


class ConformityRule(RuleBase):
    type: Literal["conformity"]
    source: str | None = None  # None or "." means the context element


class ConcatRule(RuleBase):
    type: Literal["concat"]
    sources: list[str] = []
    separator: str | None = None  # None means a single space


class StaticRule(RuleBase):
    type: Literal["static"]
    value: Any = None
    source: str | None = None  # tolerated, never read


class TemplateRule(RuleBase):
    type: Literal["template"]
    template: str = ""
    sources: list[str] = []


class LookupRule(RuleBase):
    type: Literal["lookup"]
    source: str | None = None
    map: dict[str, Any] = {}


class FirstOfRule(RuleBase):
    type: Literal["firstOf"]
    sources: list[str] = []


MappingRule = Annotated[
    Union[
        ScalarRule,
        ArrayRule,
        AsFoundAsLeftRule,
        ConformityRule,
        ConcatRule,
        StaticRule,
        TemplateRule,
        LookupRule,
        FirstOfRule,
    ],
    Field(discriminator="type"),
]

ArrayRule.model_rebuild()


class MappingProfile(BaseModel):
    name: str
    schemaNamespace: str | None = None
    rootElement: str | None = None
    description: str | None = None
    mappings: list[MappingRule] = []


class SkippedRule(BaseModel):
    """A top-level rule that failed validation and was left out of the profile."""
    index: int  # Position in the original mappings list
    target: str | None = None
    error: str


class ProfileLoadReport(BaseModel):
    profile: MappingProfile
    skipped: list[SkippedRule] = []


class ProfileSummary(BaseModel):
    name: str
    schemaNamespace: str | None = None
    rootElement: str | None = None
    description: str | None = None
    ruleCount: int
    source_file: str | None = None


# DCC generation models


class GenerateResponse(BaseModel):
    xml: str
    warnings: list[str] = []


class ConvertAndGenerateResponse(BaseModel):
    filename: str
    profile_name: str
    dcc_json: dict[str, Any]
    xml: str
    warnings: list[str] = []
    skipped_rules: list[SkippedRule] = []
