"""NEXUS parser for the sequence content of DATA and CHARACTERS blocks.

    #NEXUS
    BEGIN DATA;
      DIMENSIONS NTAX=3 NCHAR=10;
      FORMAT DATATYPE=DNA GAP=- MATCHCHAR=.;
      MATRIX
        seq1     ACGTACGTAC
        'seq 2'  ....TG....  [inline comments are dropped]
        seq3     T.T.T.T.T.
      ;
    END;

Comments are stripped first (they may nest), the text is then split into
semicolon-terminated commands and walked block by block. Commands and
blocks we do not use are skipped. NTAX may come from a TAXA block when a
CHARACTERS block omits it; MATCHCHAR is resolved once the matrix is read.
"""
import logging
from typing import Optional

from alnkit.errors import FormatError
from alnkit.schemas import Alignment, Sequence

logger = logging.getLogger(__name__)

DATA_BLOCKS = ("DATA", "CHARACTERS")
END_COMMANDS = ("END", "ENDBLOCK")


def _error(detail: str) -> FormatError:
    return FormatError("NEXUS", detail)


def _strip_comments(text: str) -> str:
    """Drop [bracketed] comments, leaving quoted text untouched."""
    out = []
    depth = 0
    in_quote = False
    line = 1
    opened_at = 0
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\n":
            line += 1
        if depth:
            if c == "[":
                depth += 1
            elif c == "]":
                depth -= 1
                if not depth:
                    out.append(" ")
            elif c == "\n":
                out.append(c)
        elif in_quote:
            out.append(c)
            if c == "'":
                if i + 1 < n and text[i + 1] == "'":
                    out.append("'")
                    i += 1
                else:
                    in_quote = False
        elif c == "[":
            depth = 1
            opened_at = line
        elif c == "]":
            raise _error(f"unmatched ']' on line {line}")
        else:
            if c == "'":
                in_quote = True
                opened_at = line
            out.append(c)
        i += 1
    if depth:
        raise _error(f"unterminated comment '[' opened on line {opened_at}")
    if in_quote:
        raise _error(f"unterminated quoted name opened on line {opened_at}")
    return "".join(out)


def _split_commands(text: str) -> list[str]:
    """Split on ';' outside single quotes. Quotes are balanced at this point."""
    commands = []
    start = 0
    in_quote = False
    for i, c in enumerate(text):
        if c == "'":
            in_quote = not in_quote
        elif c == ";" and not in_quote:
            commands.append(text[start:i])
            start = i + 1
    rest = text[start:].strip()
    if rest:
        raise _error(f"command not terminated by ';': '{rest.split(None, 1)[0]}'")
    return [cmd.strip() for cmd in commands if cmd.strip()]


def _tokenize(text: str, split_equals: bool = False) -> list[str]:
    """Whitespace-separated tokens; 'quoted words' become one token without quotes."""
    tokens = []
    buf = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == "'":
            if buf:
                tokens.append("".join(buf))
                buf = []
            j = i + 1
            word = []
            while j < n:
                if text[j] == "'":
                    if j + 1 < n and text[j + 1] == "'":
                        word.append("'")
                        j += 2
                        continue
                    break
                word.append(text[j])
                j += 1
            tokens.append("".join(word))
            i = j + 1
            continue
        if c.isspace() or (split_equals and c == "="):
            if buf:
                tokens.append("".join(buf))
                buf = []
            if c == "=":
                tokens.append("=")
        else:
            buf.append(c)
        i += 1
    if buf:
        tokens.append("".join(buf))
    return tokens


def _options(words: list[str]) -> dict:
    """KEY=VALUE pairs and bare flags of a command, keys uppercased."""
    options = {}
    i = 0
    while i < len(words):
        key = words[i].upper()
        if i + 1 < len(words) and words[i + 1] == "=":
            if i + 2 >= len(words):
                raise _error(f"missing value for {key}")
            options[key] = words[i + 2]
            i += 3
        else:
            options[key] = True
            i += 1
    return options


def _count(options: dict, key: str, block: str) -> Optional[int]:
    value = options.get(key)
    if value is None:
        return None
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise _error(f"invalid {key} value '{value}' in {block} block") from None
    if count <= 0:
        raise _error(f"{key} must be positive in {block} block")
    return count


class _DataBlock:
    def __init__(self, name: str):
        self.name = name
        self.ntax: Optional[int] = None
        self.nchar: Optional[int] = None
        self.has_dimensions = False
        self.interleave = False
        self.matchchar: Optional[str] = None
        self.matrix: Optional[str] = None

    def command(self, keyword: str, command: str) -> None:
        if keyword == "DIMENSIONS":
            options = _options(_tokenize(command, split_equals=True)[1:])
            self.has_dimensions = True
            self.ntax = _count(options, "NTAX", self.name)
            self.nchar = _count(options, "NCHAR", self.name)
        elif keyword == "FORMAT":
            options = _options(_tokenize(command, split_equals=True)[1:])
            interleave = options.get("INTERLEAVE", False)
            if isinstance(interleave, str):
                interleave = interleave.upper() in ("YES", "TRUE")
            self.interleave = bool(interleave)
            if "MATCHCHAR" in options:
                value = options["MATCHCHAR"]
                if not isinstance(value, str) or len(value) != 1:
                    raise _error(f"MATCHCHAR must be a single character, got '{value}'")
                self.matchchar = value.upper()
        elif keyword == "MATRIX":
            self.matrix = command[len("MATRIX"):]
        else:
            logger.debug("NEXUS: skipping %s command in %s block", keyword, self.name)


class _Row:
    __slots__ = ("name", "chunks", "length")

    def __init__(self, name: str):
        self.name = name
        self.chunks = []
        self.length = 0

    def extend(self, tokens: list[str]) -> None:
        data = "".join(tokens).upper()
        self.chunks.append(data)
        self.length += len(data)


def _read_sequential(lines, ntax, nchar):
    rows = []
    for tokens in lines:
        if rows and rows[-1].length < nchar:
            rows[-1].extend(tokens)
            continue
        if ntax is not None and len(rows) == ntax:
            raise _error(f"MATRIX has more rows than NTAX={ntax} taxa of NCHAR={nchar}")
        row = _Row(tokens[0])
        row.extend(tokens[1:])
        rows.append(row)
    return rows


def _read_interleaved(lines, ntax, nchar):
    rows = []
    index = {}
    first_block = True
    for i, tokens in enumerate(lines):
        name = tokens[0]
        if name in index:
            first_block = False
            index[name].extend(tokens[1:])
        elif first_block and (ntax is None or len(rows) < ntax):
            row = _Row(name)
            row.extend(tokens[1:])
            rows.append(row)
            index[name] = row
        else:
            # continuation line without a taxon name
            first_block = False
            rows[i % len(rows)].extend(tokens)
    return rows


def _apply_matchchar(rows: list, matchchar: str) -> None:
    reference = rows[0][1]
    for row in rows[1:]:
        data = row[1]
        if matchchar not in data:
            continue
        chars = list(data)
        for i, c in enumerate(chars):
            if c == matchchar and i < len(reference):
                chars[i] = reference[i]
        row[1] = "".join(chars)


def _build(block: _DataBlock, taxa_ntax: Optional[int]) -> Alignment:
    if not block.has_dimensions:
        raise _error(f"{block.name} block has no DIMENSIONS command")
    if block.nchar is None:
        raise _error(f"DIMENSIONS in {block.name} block does not give NCHAR")
    if block.matrix is None:
        raise _error(f"{block.name} block has no MATRIX command")
    ntax = block.ntax if block.ntax is not None else taxa_ntax

    lines = [tokens for tokens in map(_tokenize, block.matrix.splitlines()) if tokens]
    if not lines:
        raise _error(f"MATRIX in {block.name} block is empty")
    reader = _read_interleaved if block.interleave else _read_sequential
    rows = reader(lines, ntax, block.nchar)
    if ntax is not None and len(rows) != ntax:
        raise _error(f"expected {ntax} taxa (NTAX), found {len(rows)}")

    named = [[row.name, "".join(row.chunks)] for row in rows]
    if block.matchchar and len(named) > 1:
        _apply_matchchar(named, block.matchchar)

    seen = set()
    sequences = []
    for name, data in named:
        if name in seen:
            raise _error(f"duplicate taxon name '{name}'")
        seen.add(name)
        if len(data) != block.nchar:
            logger.warning(
                "NEXUS: taxon '%s' has %d characters, NCHAR is %d", name, len(data), block.nchar
            )
        sequences.append(Sequence(name=name, data=data))
    logger.debug(
        "NEXUS: %s block, %d taxa, %s layout",
        block.name, len(sequences), "interleaved" if block.interleave else "sequential",
    )
    return Alignment.from_sequences(sequences)


def parse_nexus(content: str) -> Alignment:
    """Parse the first DATA or CHARACTERS block of a NEXUS file."""
    stripped = content.lstrip()
    if not stripped:
        raise _error("empty input")
    if stripped[:6].upper() != "#NEXUS":
        raise _error("missing #NEXUS header")

    commands = _split_commands(_strip_comments(stripped[6:]))

    block_name = None
    data_block = None
    current = None
    taxa_ntax = None
    for command in commands:
        keyword = command.split(None, 1)[0].upper()
        if keyword == "BEGIN":
            words = command.split()
            if len(words) < 2:
                raise _error("BEGIN without a block name")
            if block_name is not None:
                raise _error(f"BEGIN {words[1]} inside {block_name} block missing END")
            block_name = words[1].upper()
            if block_name in DATA_BLOCKS and data_block is None:
                current = data_block = _DataBlock(block_name)
        elif keyword in END_COMMANDS:
            if block_name is None:
                raise _error(f"{keyword} without a matching BEGIN")
            block_name = None
            current = None
        elif current is not None:
            current.command(keyword, command)
        elif block_name == "TAXA" and keyword == "DIMENSIONS":
            options = _options(_tokenize(command, split_equals=True)[1:])
            taxa_ntax = _count(options, "NTAX", "TAXA")
        else:
            logger.debug("NEXUS: skipping %s command in %s block", keyword, block_name)

    if block_name is not None:
        raise _error(f"{block_name} block is missing END;")
    if data_block is None:
        raise _error("no DATA or CHARACTERS block found")
    return _build(data_block, taxa_ntax)
