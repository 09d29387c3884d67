"""Excuse-slip template rendering.

Templates carry ``{name}`` placeholder tokens. Rendering is literal token
replacement in a single pass: substituted values are never re-scanned, and
tokens with no supplied value stay in the output verbatim.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from nucash.domain.configuration import ExcuseSlipsSettings

TEMPLATE_TOKENS: tuple[str, ...] = (
    "studentName",
    "schoolId",
    "date",
    "delayMinutes",
    "routeName",
)

_TOKEN_PATTERN = re.compile(r"\{(" + "|".join(TEMPLATE_TOKENS) + r")\}")


def render_template(excuse_slips: ExcuseSlipsSettings, substitutions: Mapping[str, Any]) -> str:
    """Fill the excuse-slip template with the supplied values.

    Args:
        excuse_slips: Excuse-slip settings whose ``template`` is rendered.
        substitutions: Values keyed by token name (``studentName``, ...).
            Values are converted with ``str()``. Missing or ``None`` values
            leave their token unreplaced; unknown keys are ignored.

    Returns:
        The rendered text.

    Example:
        >>> settings = ExcuseSlipsSettings(template="Delayed: {studentName}, {delayMinutes} min")
        >>> render_template(settings, {"studentName": "Alice", "delayMinutes": 15})
        'Delayed: Alice, 15 min'
    """

    def _replace(match: re.Match[str]) -> str:
        value = substitutions.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return _TOKEN_PATTERN.sub(_replace, excuse_slips.template)
