from enum import Enum
from typing import Optional

from semantic_version import SimpleSpec, Version

from parity_contracts.constants import PlaceholderStyle


class CompilerFeature(Enum):
    HASHED_PLACEHOLDERS = "hashed_placeholders"


COMPILER_FEATURE_VERSIONS = {
    CompilerFeature.HASHED_PLACEHOLDERS: SimpleSpec(">=0.5.0"),
}


def _matches_feature(feature: CompilerFeature, version: Optional[str]) -> bool:
    """Returns a bool indicating whether the passed compiler version matches the minimum
    required version for the given feature."""

    if version is None:
        # No recorded compiler version means a current compiler.
        return True
    return COMPILER_FEATURE_VERSIONS[feature].match(Version.coerce(version.lstrip("v")))


def compiler_uses_hashed_placeholders(version: Optional[str]) -> bool:
    return _matches_feature(CompilerFeature.HASHED_PLACEHOLDERS, version)


def placeholder_style_for_compiler(version: Optional[str]) -> PlaceholderStyle:
    if compiler_uses_hashed_placeholders(version):
        return PlaceholderStyle.HASHED
    return PlaceholderStyle.LEGACY
