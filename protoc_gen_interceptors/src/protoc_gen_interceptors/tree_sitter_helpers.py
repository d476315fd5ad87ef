# --- Tree-sitter plumbing ----------------------------------------------------

def node_text(source_bytes: bytes, node) -> str:
    """
    Converts a node's [start_byte:end_byte] into the corresponding string.
    Tree-sitter nodes only store byte offsets, so we slice the original source.
    """
    return source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def node_point(node) -> tuple[int, int]:
    """
    Returns the (line, column) of a node's start in 0-based coordinates.
    Handy for log messages about where a rewrite happened.
    """
    return (node.start_point[0], node.start_point[1])


def code_children(node) -> list:
    """Named children with comments filtered out."""
    return [child for child in node.named_children if child.type != "comment"]


def first_error(node):
    """
    Returns the first ERROR or MISSING node under `node`, or None.
    Tree-sitter never refuses to parse, so this is how syntax errors show up.
    """
    if not node.has_error:
        return None
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current
        stack.extend(reversed(current.children))
    return node


def line_indent(source_bytes: bytes, offset: int) -> str:
    """Leading whitespace of the line containing `offset`."""
    line_start = source_bytes.rfind(b"\n", 0, offset) + 1
    end = line_start
    while end < len(source_bytes) and source_bytes[end:end + 1] in (b" ", b"\t"):
        end += 1
    return source_bytes[line_start:end].decode("utf-8")
