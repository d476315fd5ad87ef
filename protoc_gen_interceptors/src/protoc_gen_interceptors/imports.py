import logging

from protoc_gen_interceptors.src.protoc_gen_interceptors.edits import EditPlan
from protoc_gen_interceptors.src.protoc_gen_interceptors.tree_sitter_helpers import code_children, line_indent, node_text

logger = logging.getLogger(__name__)


def _spec_path(source_bytes: bytes, spec) -> str:
    path_node = spec.child_by_field_name("path")
    if path_node is None:
        return ""
    return node_text(source_bytes, path_node).strip('"`')


def _is_stdlib(path: str) -> bool:
    # Same rule goimports uses: standard library paths have no dot in the first element.
    return "." not in path.split("/", 1)[0]


def imported_paths(root, source_bytes: bytes) -> list[str]:
    paths = []
    for decl in root.named_children:
        if decl.type != "import_declaration":
            continue
        for child in code_children(decl):
            specs = code_children(child) if child.type == "import_spec_list" else [child]
            paths.extend(_spec_path(source_bytes, spec) for spec in specs if spec.type == "import_spec")
    return paths


def plan_import(root, source_bytes: bytes, plan: EditPlan, path: str) -> bool:
    """
    Plans the insertion of an import of `path` unless the file already has one.

    The new spec goes into the standard-library group of the first parenthesized
    import block, before the first path that sorts after it. Without such a block
    a separate `import "path"` line is added after the last import declaration,
    or after the package clause.

    Returns True when an insertion was planned.
    """
    if path in imported_paths(root, source_bytes):
        return False

    literal = f'"{path}"'
    import_decls = [child for child in root.named_children if child.type == "import_declaration"]

    for decl in import_decls:
        spec_lists = [child for child in code_children(decl) if child.type == "import_spec_list"]
        if not spec_lists:
            continue
        specs = [child for child in code_children(spec_lists[0]) if child.type == "import_spec"]
        if not specs:
            continue
        stdlib = [spec for spec in specs if _is_stdlib(_spec_path(source_bytes, spec))]
        if not stdlib:
            # Own group in front of the third-party imports.
            first = specs[0]
            indent = line_indent(source_bytes, first.start_byte)
            plan.insert(first.start_byte, f"{literal}\n\n{indent}")
            return True
        for spec in stdlib:
            if _spec_path(source_bytes, spec) > path:
                indent = line_indent(source_bytes, spec.start_byte)
                plan.insert(spec.start_byte, f"{literal}\n{indent}")
                return True
        last = stdlib[-1]
        indent = line_indent(source_bytes, last.start_byte)
        plan.insert(last.end_byte, f"\n{indent}{literal}")
        return True

    if import_decls:
        plan.insert(import_decls[-1].end_byte, f"\nimport {literal}")
        return True

    package_clause = next((child for child in root.named_children if child.type == "package_clause"), None)
    if package_clause is None:
        logger.warning("no package clause, cannot add import %s", literal)
        return False
    plan.insert(package_clause.end_byte, f"\n\nimport {literal}")
    return True
