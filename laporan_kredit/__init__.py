"""Extraction and publishing of NPL, KOL2 and realisasi report tables."""

__all__ = [
    "numeral",
    "classifier",
    "collector",
    "builder",
    "realisasi",
    "sheet",
    "assembler",
    "decoders",
    "storage",
    "pipeline",
    "config",
    "models",
    "cli",
]
