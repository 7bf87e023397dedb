"""
Step 5 — Normalizer

Generator output is untrusted free text. Every candidate name is trimmed,
whitespace-collapsed and truncated to its kind's column width BEFORE it is
matched or stored, then run through structural filters:

  - all kinds:     empty, placeholder ("Subject 1", "...placeholder..."),
                   echoed debug markers ("DEBUG_ERROR ...")
  - boards:        non-school institutions (university, engineering, ...)
  - universities:  error echoes and sample names
  - classes:       class numbers outside the band implied by the board name

No semantic validation beyond that.
"""

import re
from typing import Iterable, Optional, Tuple

PLACEHOLDER_RE = re.compile(r"^(board|subject|chapter|class)\s+[0-9a-z]$", re.IGNORECASE)
DEBUG_PREFIX = "debug_error"

NON_SCHOOL_BOARD_TERMS = (
    "university",
    "joint entrance",
    "entrance examination",
    "jee",
    "neet",
    "council of higher",
    "technical education",
    "medical",
    "engineering",
    "college",
    "polytechnic",
    "distance education",
    "open university",
    "deemed",
    "affiliated",
)

UNIVERSITY_ERROR_TERMS = (
    "error:",
    "exception",
    "sample university",
    "sample universities",
    "lorem ipsum",
    "as an ai",
    "i cannot",
    "unknown university",
)

# Board-name hints → inclusive class band
NATIONAL_BOARD_HINTS = ("central board", "cbse", "cisce", "icse", "nios", "national institute of open schooling")
HIGHER_SECONDARY_HINTS = (
    "higher secondary", "uccha madhyamik", "intermediate", "pre-university",
    "+2", "hsc", "council of higher",
)
PRIMARY_HINTS = ("primary", "elementary")
SECONDARY_HINTS = ("secondary", "madhyamik", "matriculation", "sslc")

ROMAN_CLASSES = {
    "i": 1, "ii": 2, "iii": 3, "iv": 4, "v": 5, "vi": 6,
    "vii": 7, "viii": 8, "ix": 9, "x": 10, "xi": 11, "xii": 12,
}


def normalize_name(raw, max_length: int) -> str:
    """Trim, collapse inner whitespace, truncate. Returns '' for junk."""
    if raw is None:
        return ""
    name = " ".join(str(raw).split())
    return name[:max_length].strip()


def contains_term(text: str, term: str) -> bool:
    """Case-insensitive whole-token match ('jee' must not hit 'Rajeev')."""
    pattern = r"(?<!\w)" + re.escape(term.lower()) + r"(?!\w)"
    return re.search(pattern, text.lower()) is not None


def is_placeholder(name: str, check_pattern: bool = True) -> bool:
    lowered = name.lower()
    if check_pattern and PLACEHOLDER_RE.match(name.strip()) is not None:
        return True
    return "placeholder" in lowered or lowered.startswith(DEBUG_PREFIX)


def rejection_reason(
    name: str,
    blocked_terms: Iterable[str] = (),
    check_pattern: bool = True,
) -> Optional[str]:
    """
    None when the candidate may be stored, else a short reason for the log.
    check_pattern=False skips the "<word> <char>" placeholder shape, which
    real class names ("Class 9") share.
    """
    if not name:
        return "empty"
    if is_placeholder(name, check_pattern):
        return "placeholder"
    for term in blocked_terms:
        if contains_term(name, term):
            return f"blocked term '{term}'"
    return None


# ─── Classes ───────────────────────────────────────────────────────────────────

def class_band_for_board(board_name: Optional[str]) -> Optional[Tuple[int, int]]:
    n = (board_name or "").lower()
    if not n or any(contains_term(n, hint) for hint in NATIONAL_BOARD_HINTS):
        return None
    if any(contains_term(n, hint) for hint in HIGHER_SECONDARY_HINTS):
        return (11, 12)
    if any(contains_term(n, hint) for hint in PRIMARY_HINTS):
        return (1, 5)
    if any(contains_term(n, hint) for hint in SECONDARY_HINTS):
        return (1, 10)
    return None


def class_number(name: str) -> Optional[int]:
    """'Class 10' → 10, 'Class XI' → 11, 'Nursery' → None."""
    digits = re.sub(r"\D", "", name)
    if digits:
        return int(digits)
    for token in reversed(name.lower().split()):
        if token in ROMAN_CLASSES:
            return ROMAN_CLASSES[token]
    return None


def class_fits_board(name: str, board_name: Optional[str]) -> bool:
    band = class_band_for_board(board_name)
    number = class_number(name)
    if band is None or number is None:
        return True
    return band[0] <= number <= band[1]
