"""Rule-based interpreter: mixed Hindi/English instruction text -> actions.

The grammar is a fixed, ordered list of intent rules. Each rule owns one or
more regular expressions over the lowercased, whitespace-normalized text and a
builder that turns a match into an :mod:`sheetbol.contracts.actions` model.
The first rule that produces an action wins; text that no rule recognizes
yields an empty list.
"""

from __future__ import annotations

import re
from typing import Callable, NamedTuple, Sequence

from sheetbol.contracts.actions import (
    Action,
    AddColumnSum,
    DeleteColumn,
    FilterRows,
    RenameColumn,
    RenameSheet,
    SetValueWhere,
    SortBy,
)

_WS_RE = re.compile(r"\s+")

_COL = r"(?:column|col|stambh)"
_SHEET = r"sheets?"
_COL_WORDS = r"column|col|stambh"
_DIR = r"ascending|asc|descending|desc"
_VERB = r"(?:\s(?:rakho|rakh\sdo|karo|kar\sdo|banao|bana\sdo|kijiye|do))?"
_END = r"[\s.!?]*$"
_RENAME_VERB = r"(?:rename|change)"
_RENAME_SUFFIX = r"(?:\s(?:naam\s(?:rakho|rakh\sdo|do|badlo|karo|kar\sdo)|rename\s(?:karo|kar\sdo)))"
_RENAME_TRAIL = r"(?:" + _RENAME_SUFFIX + r"|" + _VERB + r")"
_RENAME_LOOSE = r"(?:" + _RENAME_SUFFIX + r"|\s(?:rakho|rakh\sdo|karo|kar\sdo))"
_LOCATOR_WORDS = r"me|mein|main|par|pe"
_VERB_WORDS = r"rakho|rakh|karo|kar|banao|bana|kijiye|do"
# verb ending a "ka naam <Y> rakho" phrase; anything after it is not part of the name
_VERB_STOP = r"\s(?:rakho|rakh\sdo|karo|kar\sdo|banao|bana\sdo|kijiye|do)\b.*"

# transports reject longer instructions before matching
MAX_INSTRUCTION_LENGTH = 500

# "Sales sheet me ...", "in sheet Sales, ..."
_SCOPE = r"^(?:.*?\b" + _SHEET + r"\b(?:\s(?:me|mein|main|par|pe|ke\sandar))?[\s,:]+)?"

# "... from Sales sheet", "... in sheet Sales", "... Sales sheet se"
_TAIL = (
    r"(?:,?\s(?:(?:from|in|of|on)\s(?:the\s)?(?:" + _SHEET + r"\s\w[\w\s-]*?|\w[\w\s-]*?\s" + _SHEET + r")"
    r"|\w[\w\s-]*?\s" + _SHEET + r"\s(?:se|me|mein|main|par|pe)))?"
)

_FILTER_TRIGGER_RE = re.compile(r"\b(?:sirf|keep|only|retain|bas|rakh\w*)\b")


def _phrase(name: str, exclude: str | None = None) -> str:
    """Named group matching one or more space-separated words, lazily."""
    if exclude:
        word = rf"(?!(?:{exclude})\b)\w[\w-]*"
    else:
        word = r"\w[\w-]*"
    return rf"(?P<{name}>{word}(?:\s{word})*?)"


def _quoted(name: str) -> str:
    return rf"(?P<{name}_q>['\"])(?P<{name}>.+?)(?P={name}_q)"


def normalize_instruction(text: str) -> str:
    """Collapse whitespace runs to a single space and trim."""
    return _WS_RE.sub(" ", text).strip()


def title_case(fragment: str) -> str:
    """Upper-case the first letter of every space-separated word."""
    return " ".join(w[:1].upper() + w[1:] for w in fragment.split(" ") if w)


def extract_sheet_mention(lower: str, sheet_names: Sequence[str]) -> str | None:
    """First known sheet whose lowercase name occurs in the instruction."""
    for name in sheet_names:
        if name and name.lower() in lower:
            return name
    return None


class _Text(NamedTuple):
    original: str
    lower: str
    sheet_names: Sequence[str]

    def literal(self, m: re.Match, group: str) -> str:
        """Matched group as typed by the user, falling back to lowercase."""
        if len(self.original) == len(self.lower):
            return self.original[m.start(group):m.end(group)]
        return m.group(group)

    @property
    def sheet(self) -> str | None:
        return extract_sheet_mention(self.lower, self.sheet_names)


def _op(raw: str) -> str:
    return "==" if raw == "=" else raw


# ---------------------------------------------------------------------------
# rules
# ---------------------------------------------------------------------------
_RENAME_SHEET = (
    re.compile(
        _phrase("old", _COL_WORDS) + r"\s" + _SHEET + r"\s(?:ka\s|ke\s)?(?:naam|name)\s"
        + _phrase("new", _COL_WORDS + "|" + _VERB_WORDS) + r"(?:" + _VERB_STOP + r")?" + _END
    ),
    re.compile(
        r"\b" + _RENAME_VERB + r"\s(?:the\s)?" + _SHEET + r"\s(?:(?:ka\s)?(?:naam|name)\s)?"
        + _phrase("old", _COL_WORDS) + r"\s(?:ko|to|se|as)\s" + _phrase("new", _COL_WORDS)
        + _RENAME_TRAIL + _END
    ),
    re.compile(
        r"\b" + _SHEET + r"\s(?:ka\s)?(?:naam|name)\s"
        + _phrase("old", _COL_WORDS) + r"\s(?:ko|to|se)\s" + _phrase("new", _COL_WORDS)
        + _RENAME_TRAIL + _END
    ),
    re.compile(
        r"\b" + _SHEET + r"\s" + _phrase("old", _COL_WORDS + "|" + _LOCATOR_WORDS) + r"\s(?:ko|to)\s"
        + _phrase("new", _COL_WORDS + "|sort|set") + _RENAME_LOOSE + _END
    ),
    re.compile(
        r"\b" + _RENAME_VERB + r"\s(?:the\s)?" + _phrase("old", _COL_WORDS) + r"\s" + _SHEET
        + r"\s(?:to|as)\s" + _phrase("new", _COL_WORDS) + _END
    ),
)


def _rename_sheet(m: re.Match, text: _Text) -> Action:
    return RenameSheet(sheet_old=title_case(m.group("old")), sheet_new=title_case(m.group("new")))


_RENAME_COLUMN = (
    re.compile(
        _SCOPE + _phrase("old") + r"\s" + _COL + r"\s(?:ka\s|ke\s)?(?:naam|name)\s"
        + _phrase("new", _VERB_WORDS) + r"(?:" + _VERB_STOP + r"|" + _TAIL + r")" + _END
    ),
    re.compile(
        r"\b" + _RENAME_VERB + r"\s(?:the\s)?" + _COL + r"\s(?:(?:ka\s)?(?:naam|name)\s)?"
        + _phrase("old") + r"\s(?:ko|to|se|as)\s" + _phrase("new")
        + _RENAME_TRAIL + _TAIL + _END
    ),
    re.compile(
        r"\b" + _COL + r"\s(?:ka\s)?(?:naam|name)\s"
        + _phrase("old") + r"\s(?:ko|to|se)\s" + _phrase("new")
        + _RENAME_TRAIL + _TAIL + _END
    ),
    re.compile(
        r"\b" + _COL + r"\s" + _phrase("old") + r"\s(?:ko|to)\s" + _phrase("new", "sort|set")
        + _RENAME_LOOSE + _TAIL + _END
    ),
    re.compile(
        r"\b" + _RENAME_VERB + r"\s(?:the\s)?" + _phrase("old") + r"\s" + _COL + r"\s(?:to|as)\s"
        + _phrase("new") + _TAIL + _END
    ),
)


def _rename_column(m: re.Match, text: _Text) -> Action:
    return RenameColumn(
        sheet_name=text.sheet,
        column_old=title_case(m.group("old")),
        column_new=title_case(m.group("new")),
    )


_ADD_COLUMN_SUM = (
    re.compile(
        _SCOPE + _phrase("new") + r"\s" + _COL
        + r"\s(?:add|create|banao|bana\sdo|jodo|jod\sdo|insert|daalo|dalo)(?:\s(?:karo|kar\sdo|do|kijiye))?"
        + r"(?:\s(?:jo|jisme|which\sis|that\sis|where)|\s?[=:])?\s"
        + _phrase("a") + r"\s?\+\s?" + _phrase("b")
        + r"(?:\s(?:ho|hai|hoga|ka\ssum|ka\stotal|ka\sjod))?" + _TAIL + _END
    ),
    re.compile(
        r"\b(?:add|create|insert)\s(?:a\s|an\s|the\s)?(?:new\s)?" + _COL + r"\s(?:named\s|called\s)?"
        + _phrase("new") + r"\s(?:=|as|which\sis|that\sis|with|jo)\s"
        + _phrase("a") + r"\s?\+\s?" + _phrase("b") + _TAIL + _END
    ),
)


def _add_column_sum(m: re.Match, text: _Text) -> Action:
    return AddColumnSum(
        sheet_name=text.sheet,
        col_a=title_case(m.group("a")),
        col_b=title_case(m.group("b")),
        new_column=title_case(m.group("new")),
    )


_DELETE_VERB = r"(?:delete|remove|drop|hatao|hatado|hata\sdo|mitao|nikalo|nikal\sdo)"

_DELETE_COLUMN = (
    re.compile(
        r"\b" + _DELETE_VERB + r"\s(?:the\s|karo\s)?" + _COL + r"\s" + _phrase("name") + _TAIL + _END
    ),
    re.compile(
        r"\b" + _DELETE_VERB + r"\s(?:the\s)?" + _phrase("name") + r"\s" + _COL + _TAIL + _END
    ),
    re.compile(
        _SCOPE + _phrase("name") + r"\s" + _COL + r"\s(?:ko\s)?" + _DELETE_VERB
        + r"(?:\s(?:karo|kar\sdo|do|kijiye))?" + _TAIL + _END
    ),
)


def _delete_column(m: re.Match, text: _Text) -> Action:
    return DeleteColumn(sheet_name=text.sheet, column_name=title_case(m.group("name")))


_FILTER_ROWS = (
    re.compile(
        r"\b(?:where|jahan|jahaan|jaha|jisme|jismein|jinme|jinmein)\s" + _phrase("column")
        + r"\s?(?P<op>>=|<=|==|!=|>|<|=)\s?(?P<value>-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?)(?!\w|[.,]\d)"
    ),
)


def _filter_rows(m: re.Match, text: _Text) -> Action | None:
    if not _FILTER_TRIGGER_RE.search(text.lower):
        return None
    return FilterRows(
        sheet_name=text.sheet,
        column_name=title_case(m.group("column")),
        operator=_op(m.group("op")),
        value=float(m.group("value").replace(",", "")),
    )


_SORT_BY = (
    re.compile(
        _SCOPE + _phrase("column") + r"(?:\s" + _COL + r")?"
        + r"\s(?:ke\s(?:hisaab|hisab|anusaar|mutabik)\sse|ke\sbasis\spar|wise)"
        + r"\s(?:(?P<direction>" + _DIR + r")\s)?sort(?:\s(?:karo|kar\sdo|do))?"
        + r"(?:\s(?P<direction2>" + _DIR + r"))?(?:\s(?:order|me|mein))?" + _TAIL + _END
    ),
    re.compile(
        r"\bsort\s(?:(?:the\s)?(?:rows|data|table|(?:\w[\w-]*\s)?sheet)\s)?(?:by\s|on\s)?"
        + r"(?!karo\b|kar\sdo\b)" + _phrase("column")
        + r"(?:\s" + _COL + r")?(?:\s(?:in\s)?(?P<direction>" + _DIR + r")(?:\sorder)?)?"
        + r"(?:\s(?:karo|kar\sdo))?" + _TAIL + _END
    ),
)


def _sort_by(m: re.Match, text: _Text) -> Action:
    groups = m.groupdict()
    raw = groups.get("direction") or groups.get("direction2") or "asc"
    return SortBy(
        sheet_name=text.sheet,
        column_name=title_case(m.group("column")),
        direction="desc" if raw.startswith("desc") else "asc",
    )


_SET_VALUE_WHERE = (
    re.compile(
        r"\bset\s(?:the\s)?" + _phrase("target") + r"\s(?:" + _COL + r"\s)?(?:to|=|as)\s?"
        + _quoted("value") + r"\s?,?\s?(?:where|jahan|when|if)\s" + _phrase("condition")
        + r"\s?(?P<op>==|!=|=)\s?" + _quoted("condition_value")
    ),
    re.compile(
        _SCOPE + _phrase("target") + r"\s(?:" + _COL + r"\s)?(?:ko\s|to\s|me\s|mein\s|=\s?)?"
        + _quoted("value") + r"\s?(?:set|rakho|likho|karo|kar\sdo|daalo|dalo)?(?:\s(?:karo|kar\sdo|do))?"
        + r"\s?,?\s?(?:jahan|jahaan|jaha|where|jisme|jinme)\s" + _phrase("condition")
        + r"\s?(?:" + _COL + r"\s)?(?P<op>==|!=|=)\s?" + _quoted("condition_value")
    ),
)


def _set_value_where(m: re.Match, text: _Text) -> Action:
    return SetValueWhere(
        sheet_name=text.sheet,
        target_column=title_case(m.group("target")),
        operator=_op(m.group("op")),
        condition_column=title_case(m.group("condition")),
        condition_value=text.literal(m, "condition_value"),
        value=text.literal(m, "value"),
    )


class Rule(NamedTuple):
    name: str
    patterns: tuple[re.Pattern, ...]
    build: Callable[[re.Match, _Text], Action | None]


# Order is significant: the first rule that builds an action wins.
RULES: tuple[Rule, ...] = (
    Rule("rename_sheet", _RENAME_SHEET, _rename_sheet),
    Rule("rename_column", _RENAME_COLUMN, _rename_column),
    Rule("add_column_sum", _ADD_COLUMN_SUM, _add_column_sum),
    Rule("delete_column", _DELETE_COLUMN, _delete_column),
    Rule("filter_rows", _FILTER_ROWS, _filter_rows),
    Rule("sort_by", _SORT_BY, _sort_by),
    Rule("set_value_where", _SET_VALUE_WHERE, _set_value_where),
)


def _match_rule(rule: Rule, text: _Text) -> Action | None:
    for pattern in rule.patterns:
        m = pattern.search(text.lower)
        if m is None:
            continue
        action = rule.build(m, text)
        if action is not None:
            return action
    return None


def interpret(instruction: str, sheet_names: Sequence[str] = ()) -> list[Action]:
    """Translate an instruction into zero or one actions.

    ``sheet_names`` are the workbook's sheet titles in order; they are only
    used to detect which sheet the instruction mentions.
    """
    original = normalize_instruction(instruction)
    text = _Text(original=original, lower=original.lower(), sheet_names=sheet_names)
    if not text.lower:
        return []
    for rule in RULES:
        action = _match_rule(rule, text)
        if action is not None:
            return [action]
    return []
