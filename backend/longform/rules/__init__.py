"""
Rule-based instruction parsing for the recipe compiler.
"""

from .instruction_parser import (
    COMPILER_REVISION,
    ParseResult,
    find_phrase,
    parse_instructions,
    parse_timestamp,
    split_clauses,
    tokenize_transcript,
    tokenize_words,
)

__all__ = [
    "COMPILER_REVISION",
    "ParseResult",
    "find_phrase",
    "parse_instructions",
    "parse_timestamp",
    "split_clauses",
    "tokenize_transcript",
    "tokenize_words",
]
