"""
Fixed header-format rules.

The delimiter set and encoding default are closed; nothing outside them is
sniffed or guessed.
"""

DEFAULT_ENCODING = "utf-8"  # decoded non-fatally, bad bytes become U+FFFD
BOM = "\ufeff"
QUOTE = '"'

# Order matters: comma is the incumbent and wins every tie.
CANDIDATE_DELIMITERS = (",", "\t", ";", "|")
DEFAULT_DELIMITER = ","
