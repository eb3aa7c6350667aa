"""Drop diagnostics raised for screens whose backend feature is switched off."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from acumate.core.ir import ClassInfo, Diagnostic
from acumate.core.resolver import create_class_info_lookup
from acumate.services.metadata import is_feature_disabled

logger = logging.getLogger(__name__)


def filter_feature_gated(
    diagnostics: Iterable[Diagnostic],
    class_infos: Iterable[ClassInfo],
    disabled_features: set[str],
) -> list[Diagnostic]:
    """
    Remove diagnostics whose origin class is gated by a disabled feature.

    Args:
        diagnostics: Diagnostics of one document
        class_infos: Classes the diagnostics may originate from
        disabled_features: Normalized names of disabled backend features

    Returns:
        Diagnostics that are not gated
    """
    diagnostics = list(diagnostics)
    if not disabled_features:
        return diagnostics

    lookup = create_class_info_lookup(class_infos)
    gated: dict[str, bool] = {}
    kept: list[Diagnostic] = []
    for diagnostic in diagnostics:
        origin = diagnostic.origin_class
        if origin is not None:
            if origin not in gated:
                info = lookup.get(origin)
                gated[origin] = info is not None and is_feature_disabled(
                    info.features, disabled_features
                )
            if gated[origin]:
                logger.debug("Skipping diagnostic for feature-gated class %s", origin)
                continue
        kept.append(diagnostic)
    return kept
