"""Citation marker normalization and answer formatting repair.

Language models cite the numbered context blocks in many spellings
(``[Document 2]``, ``[Doc 2: Title]``, ``Document 2]`` ...). Everything here
rewrites them into the canonical ``[N]`` form, where N is the 1-based
position of the chunk in the generation context, and repairs list numbering.
All functions are pure.
"""

import re

# [Document N: label], [Doc N], [Document N], [N]
BRACKETED_CITATION = re.compile(
    r"\[\s*(?:Doc(?:ument)?\s*)?(\d+)\s*(?::[^\]]+)?\s*\]", re.IGNORECASE
)
# Document N], Doc N] (left bracket missing)
UNOPENED_CITATION = re.compile(r"\bDoc(?:ument)?\s*(\d+)\s*\]", re.IGNORECASE)
CANONICAL_CITATION = re.compile(r"\[(\d+)\]")

ORPHAN_DOC_WORD = re.compile(r"\bDoc(?:ument)?\b(?!\s*\d)[ \t]*")
ORPHAN_CLOSING_BRACKET = re.compile(r"[ \t]+\]")
INNER_SPACE_RUN = re.compile(r"(?<=\S)[ \t]{2,}")

LIST_ITEM = re.compile(r"^(\s*)(\d+)[.)]\s+(.+)$")


def normalize_citations(text: str) -> str:
    """Rewrite every recognised citation spelling to ``[N]``."""
    text = BRACKETED_CITATION.sub(r"[\1]", text)
    return UNOPENED_CITATION.sub(r"[\1]", text)


def remove_invalid_citation_fragments(text: str) -> str:
    """Drop leftovers of citations that could not be normalized.

    Removes capitalised "Document"/"Doc" words not followed by a number and
    closing brackets preceded by whitespace, then collapses the space runs
    this leaves inside lines. Indentation and newlines are kept.
    """
    text = ORPHAN_DOC_WORD.sub("", text)
    text = ORPHAN_CLOSING_BRACKET.sub(" ", text)
    return INNER_SPACE_RUN.sub(" ", text)


def renumber_lists(text: str) -> str:
    """Renumber consecutive numbered-list lines 1, 2, 3, ...

    Models often emit "1. 1. 1."; a blank or non-list line ends the run.
    """
    result = []
    counter = 0
    for line in text.split("\n"):
        match = LIST_ITEM.match(line)
        if match:
            counter += 1
            result.append(f"{match.group(1)}{counter}. {match.group(3)}")
        else:
            counter = 0
            result.append(line)
    return "\n".join(result)


def clean_answer_format(answer: str) -> str:
    """Full post-processing pass applied to every generated answer."""
    cleaned = normalize_citations(answer)
    cleaned = remove_invalid_citation_fragments(cleaned)

    # Orphan list markers: ". text" at line start
    cleaned = re.sub(r"^\.([ \t]+)", r"\1", cleaned, flags=re.MULTILINE)
    # Stray punctuation opening a line
    cleaned = re.sub(r"^[，,。、：:][ \t]*", "", cleaned, flags=re.MULTILINE)
    # Bullet markers
    cleaned = re.sub(r"^[-*•·][ \t]+(.+)$", r"\1", cleaned, flags=re.MULTILINE)
    # "1.text" -> "1. text" (but leave decimals such as "3.5")
    cleaned = re.sub(r"^(\d+)\.([^\s\d])", r"\1. \2", cleaned, flags=re.MULTILINE)
    # Empty list items
    cleaned = re.sub(r"^\d+[.)][ \t]*$", "", cleaned, flags=re.MULTILINE)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned).strip()

    return renumber_lists(cleaned)


def extract_citation_numbers(text: str) -> list[int]:
    """Distinct citation numerals in first-appearance order.

    Expects text already passed through ``normalize_citations``.
    """
    seen = set()
    numbers = []
    for match in CANONICAL_CITATION.finditer(text):
        number = int(match.group(1))
        if number not in seen:
            seen.add(number)
            numbers.append(number)
    return numbers
