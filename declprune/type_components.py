"""
Type-reference tokenizer.

Breaks a type expression, or any free-form span of Swift code, into the type
names it may refer to:

    type_components("[String: Foo<Bar?>]")          -> ["Foo", "Bar"]
    type_components("(Baz, Int) -> Observable<Qux>") -> ["Baz", "Observable", "Qux"]
    type_components("Module.Outer.Inner!")          -> ["Module", "Outer", "Inner"]

Optional and force-unwrap markers, generic brackets, tuple parens, function
arrows, collection brackets and protocol composition (`&`) are separators.
Every segment of a dotted path is kept, since the qualifier may be an
enclosing type rather than a module. Built-in scalars, void markers and
language keywords are dropped; everything else identifier-shaped is emitted.
A missed reference deletes live code, a spurious one only keeps a type alive.
"""

import re
from typing import Iterable, List

BUILTIN_TYPES = {
    "Void", "Never", "Any", "AnyObject", "Self",
    "Bool", "String", "Character", "Substring",
    "Int", "Int8", "Int16", "Int32", "Int64",
    "UInt", "UInt8", "UInt16", "UInt32", "UInt64",
    "Float", "Float16", "Float32", "Float64", "Float80", "Double",
}

KEYWORDS = {
    "associatedtype", "class", "deinit", "enum", "extension", "fileprivate",
    "func", "import", "init", "inout", "internal", "let", "open", "operator",
    "private", "protocol", "public", "rethrows", "static", "struct",
    "subscript", "typealias", "var", "break", "case", "catch", "continue",
    "default", "defer", "do", "else", "fallthrough", "for", "guard", "if",
    "in", "repeat", "return", "throw", "throws", "switch", "where", "while",
    "as", "is", "nil", "super", "self", "true", "false", "try", "async",
    "await", "some", "any", "weak", "unowned", "lazy", "final", "override",
    "mutating", "nonmutating", "convenience", "required", "dynamic",
    "indirect", "get", "set", "willSet", "didSet", "escaping", "autoclosure",
}

# Backticked identifiers, plain identifiers, numeric literals, arrows, then
# any other single non-space character.
TOKEN_RE = re.compile(r"`[^`\s]+`|[^\W\d]\w*|\d[\w.]*|->|\S")
IDENTIFIER_RE = re.compile(r"[^\W\d]\w*")


# String literals are matched so that "//" inside them is not read as a comment
COMMENT_RE = re.compile(r'"(?:\\.|[^"\\\n])*"|//[^\n]*|/\*[\s\S]*?\*/')


def strip_comments(text: str) -> str:
    """Blank out line and block comments, leaving string literals alone."""
    def replace(match):
        token = match.group(0)
        return token if token.startswith('"') else " "
    return COMMENT_RE.sub(replace, text)


def is_type_candidate(word: str) -> bool:
    """True for identifiers that could name a user-declared type."""
    return word not in BUILTIN_TYPES and word not in KEYWORDS


def type_components(text: str) -> List[str]:
    """Return every referenceable type name in a type expression, in order, once each."""
    found = {}
    for token in TOKEN_RE.findall(text):
        if token.startswith("`"):
            word = token.strip("`")
            if IDENTIFIER_RE.fullmatch(word):
                found.setdefault(word, None)
            continue
        if IDENTIFIER_RE.fullmatch(token) and is_type_candidate(token):
            found.setdefault(token, None)
    return list(found)


def split_words(text: str) -> List[str]:
    """Split a raw code span on whitespace and newlines."""
    return text.split()


def components_of_span(text: str) -> List[str]:
    """Decompose every whitespace-separated token of a code span, ignoring comments."""
    results = []
    for word in split_words(strip_comments(text)):
        results.extend(type_components(word))
    return results


def components_of_all(type_names: Iterable[str]) -> List[str]:
    results = []
    for name in type_names:
        results.extend(type_components(name))
    return results
