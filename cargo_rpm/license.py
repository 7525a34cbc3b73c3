"""Convert Cargo license metadata into an RPM ``License:`` tag.

Cargo uses SPDX expressions (and, in older crates, ``/`` as a shorthand for
``OR``). RPM spec files traditionally use Fedora's short license names, so
well-known SPDX identifiers are translated (``Apache-2.0`` -> ``ASL 2.0``)
and operators are lowercased. Identifiers without a Fedora short name are
kept as-is.
"""

import re
from typing import Dict

from license_expression import ExpressionError, get_spdx_licensing

from .config import CargoLicense
from .exceptions import LicenseError

_spdx_licensing = get_spdx_licensing()

# SPDX identifier -> Fedora short name
FEDORA_LICENSE_NAMES: Dict[str, str] = {
    "Apache-1.1": "ASL 1.1",
    "Apache-2.0": "ASL 2.0",
    "Artistic-1.0": "Artistic",
    "Artistic-2.0": "Artistic 2.0",
    "BSD-2-Clause": "BSD",
    "BSD-3-Clause": "BSD",
    "BSD-4-Clause": "BSD with advertising",
    "BSL-1.0": "Boost",
    "CC0-1.0": "CC0",
    "GPL-1.0-or-later": "GPL+",
    "GPL-2.0-only": "GPLv2",
    "GPL-2.0-or-later": "GPLv2+",
    "GPL-3.0-only": "GPLv3",
    "GPL-3.0-or-later": "GPLv3+",
    "ISC": "ISC",
    "LGPL-2.0-only": "LGPLv2",
    "LGPL-2.1-only": "LGPLv2",
    "LGPL-2.1-or-later": "LGPLv2+",
    "LGPL-3.0-only": "LGPLv3",
    "LGPL-3.0-or-later": "LGPLv3+",
    "MIT": "MIT",
    "MPL-1.1": "MPLv1.1",
    "MPL-2.0": "MPLv2.0",
    "Unlicense": "Unlicense",
    "Zlib": "zlib",
}

_OPERATORS = {"AND": "and", "OR": "or", "WITH": "with"}

_TOKEN_RE = re.compile(r"[A-Za-z0-9.+\-]+")


def _normalize_cargo_syntax(expression: str) -> str:
    # "MIT/Apache-2.0" is the pre-SPDX Cargo spelling of "MIT OR Apache-2.0"
    return " OR ".join(part.strip() for part in expression.split("/"))


def convert(license: CargoLicense) -> str:
    """
    Convert a crate license into an RPM license string.

    Args:
        license: The crate's ``license`` or ``license-file`` value

    Returns:
        The RPM ``License:`` value, e.g. ``"MIT or ASL 2.0"``

    Raises:
        LicenseError: For ``license-file`` licenses and unknown or malformed
            SPDX expressions
    """
    if license.is_file:
        raise LicenseError(f"license-file ({license.value}) can't be converted to an RPM license")

    expression = _normalize_cargo_syntax(license.value)
    try:
        parsed = _spdx_licensing.parse(expression, validate=True)
    except ExpressionError as e:
        raise LicenseError(f"invalid SPDX license expression {license.value!r}: {e}") from e

    if parsed is None:
        raise LicenseError("empty license expression")

    def _translate(match: re.Match) -> str:
        token = match.group(0)
        if token in _OPERATORS:
            return _OPERATORS[token]
        return FEDORA_LICENSE_NAMES.get(token, token)

    return _TOKEN_RE.sub(_translate, str(parsed))
