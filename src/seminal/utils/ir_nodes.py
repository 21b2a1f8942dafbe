import re

instruction_types = {
    "load": ["load"],
    "store": ["store"],
    "call": ["call", "invoke", "callbr"],
    "branch": ["br"],
    "terminator": [
        "br",
        "switch",
        "indirectbr",
        "ret",
        "resume",
        "unreachable",
        "invoke",
        "callbr",
        "catchswitch",
        "catchret",
        "cleanupret",
    ],
    "cast": [
        "trunc",
        "zext",
        "sext",
        "fptrunc",
        "fpext",
        "fptoui",
        "fptosi",
        "uitofp",
        "sitofp",
        "ptrtoint",
        "inttoptr",
        "bitcast",
        "addrspacecast",
    ],
    "address": ["getelementptr", "bitcast", "addrspacecast"],
    "storage": ["alloca"],
    "call_prefixes": ["tail", "musttail", "notail"],
}

# Intrinsics that only carry debug information.
debug_intrinsics = ["llvm.dbg.declare", "llvm.dbg.value", "llvm.dbg.addr", "llvm.dbg.assign"]
debug_records = ["#dbg_declare", "#dbg_value", "#dbg_assign"]

IDENTIFIER = r'(?:[-a-zA-Z$._][-a-zA-Z$._0-9]*|\d+|"[^"]*")'

local_value_pattern = re.compile(r"^%" + IDENTIFIER + r"$")
global_value_pattern = re.compile(r"^@" + IDENTIFIER + r"$")
constant_pattern = re.compile(
    r"^(?:-?\d+(?:\.\d+(?:e[-+]?\d+)?)?|0x[0-9A-Fa-f]+|true|false|null|none|undef|poison"
    r"|zeroinitializer|c\".*\"|!\d+|!\w+\(.*\))$"
)
label_definition_pattern = re.compile(r"^(" + IDENTIFIER + r"):(?:\s|$)")
attachment_pattern = re.compile(r"(?:,\s*![-a-zA-Z$._0-9]+\s+(?:!\d+|!\{[^}]*\}))+\s*$")
label_reference_pattern = re.compile(r"label\s+(%" + IDENTIFIER + r")")
debug_reference_pattern = re.compile(r"!dbg\s+!(\d+)")


def strip_comment(line):
    """Drop a trailing `; ...` comment, ignoring semicolons inside quotes."""
    in_quotes = False
    for position, char in enumerate(line):
        if char == '"':
            in_quotes = not in_quotes
        elif char == ";" and not in_quotes:
            return line[:position].rstrip()
    return line.rstrip()


def strip_attachments(text):
    """Remove trailing metadata attachments such as `, !dbg !17, !llvm.loop !30`"""
    return attachment_pattern.sub("", text).rstrip()


def split_top_level(text, separator=","):
    """
    Split IR operand text on separators that are not nested inside
    brackets, braces, parentheses, angle brackets or quotes.
    """
    pieces = []
    depth = 0
    in_quotes = False
    current = []
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes:
            if char in "([{<":
                depth += 1
            elif char in ")]}>":
                depth -= 1
            elif char == separator and depth == 0:
                pieces.append("".join(current).strip())
                current = []
                continue
        current.append(char)
    tail = "".join(current).strip()
    if tail:
        pieces.append(tail)
    return pieces


def matching_paren(text, start):
    """Index of the parenthesis closing the one opened at `start`, or -1"""
    depth = 0
    in_quotes = False
    for position in range(start, len(text)):
        char = text[position]
        if char == '"':
            in_quotes = not in_quotes
        elif in_quotes:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return position
    return -1


def value_token(piece):
    """
    Extract the value spelling from a typed operand such as
    `ptr noundef %a` or `i32 0`. Returns None for pieces that only carry
    a type, an alignment or another non-value keyword.
    """
    piece = piece.strip()
    if not piece or piece.startswith("align ") or piece.startswith("!"):
        return None
    if piece.endswith(")") and "(" in piece:
        # Constant expression: `ptr getelementptr inbounds (...)`
        return piece
    if " to " in piece:
        piece = piece.split(" to ", 1)[0].strip()
    token = piece.split()[-1]
    if is_value_spelling(token):
        return token
    return None


def is_value_spelling(token):
    return bool(
        local_value_pattern.match(token)
        or global_value_pattern.match(token)
        or constant_pattern.match(token)
    )


def unquote(name):
    """`%"weird name"` -> `weird name`, `@main` -> `main`"""
    name = name.lstrip("%@")
    if name.startswith('"') and name.endswith('"'):
        return name[1:-1]
    return name
