"""Helpers for tests."""

import re


def check_good_markdown(text: str) -> None:
    """
    Make some checks of Markdown text.

    These are meant to catch mistakes in code producing comments.

    Returns:
        Nothing.  Will raise an exception with a failure message if something
        is wrong.
    """
    if text.startswith((" ", "\n", "\t")):
        raise ValueError(f"Markdown shouldn't start with whitespace: {text!r}")

    # HTML comments must be on a line by themselves or the Markdown won't
    # render properly.
    if re.search(".<!--", text):
        raise ValueError(f"Markdown shouldn't have an HTML comment in the middle of a line: {text!r}")
    if re.search("-->.", text):
        raise ValueError(f"Markdown shouldn't have an HTML comment with following text: {text!r}")


def check_good_graphql(text: str) -> None:
    """
    Do some simple checks of a GraphQL query.

    Returns:
        Nothing.  Will raise an exception with a failure message if something
        is wrong.
    """
    # Remove all comments.
    code = re.sub(r"(?m)#.*$", "", text)

    # The first word should be "query" or "mutation".
    first = code.split(None, 1)[0]
    if first not in {"query", "mutation"}:
        raise ValueError(f"GraphQL query starts with wrong word: {text!r}")

    # Parens should be balanced.
    stack = []
    pairs = {")": "(", "}": "{", "]": "["}
    for ch in code:
        if ch in pairs.values():
            stack.append(ch)
        elif ch in pairs.keys():            # pylint: disable=consider-iterating-dictionary
            if not stack or stack[-1] != pairs[ch]:
                raise ValueError(f"GraphQL query has unbalanced parens: {text!r}")
            stack.pop()
    if stack:
        raise ValueError(f"GraphQL query has unbalanced parens: {text!r}")


def block_texts(blocks) -> list:
    """
    All the text in a list of Slack blocks, for making assertions.
    """
    texts = []
    def _walk(obj):
        if isinstance(obj, dict):
            for key, value in obj.items():
                if key in ("text", "alt_text") and isinstance(value, str):
                    texts.append(value)
                else:
                    _walk(value)
        elif isinstance(obj, list):
            for item in obj:
                _walk(item)
    _walk(blocks)
    return texts
