import logging
from dataclasses import dataclass, field
from typing import Optional

import tree_sitter_go
from tree_sitter import Language, Node, Parser, Tree

from protoc_gen_interceptors.src.protoc_gen_interceptors.edits import EditPlan
from protoc_gen_interceptors.src.protoc_gen_interceptors.errors import SourceParseError
from protoc_gen_interceptors.src.protoc_gen_interceptors.imports import plan_import
from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import (
    CapturedRewrite,
    FileIndex,
    RewriteResult,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.naming import (
    ANNOTATE_INCOMING_CONTEXT,
    INTERCEPTOR_VAR,
    RUNTIME_PACKAGE,
    SERVER_VAR,
    wrapper_function_name,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.synthesizer import (
    INTERCEPTOR_PARAM,
    render_call_site,
    render_captured,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.tree_sitter_helpers import (
    code_children,
    first_error,
    node_point,
    node_text,
)

logger = logging.getLogger(__name__)

ASSIGNMENT_TYPES = ("short_var_declaration", "assignment_statement")
PARAMETER_TYPES = ("parameter_declaration", "variadic_parameter_declaration")
STRING_LITERAL_TYPES = ("interpreted_string_literal", "raw_string_literal")
SERVER_TYPE_NODES = ("type_identifier", "qualified_type")
FMT_PACKAGE = "fmt"


# --- Tree-sitter language loading -------------------------------------------

def load_go_language() -> Language:
    """
    Loads the Tree-sitter Go grammar shipped by the `tree-sitter-go` wheel.
    """
    return Language(tree_sitter_go.language())


# --- Declaration helpers ----------------------------------------------------

def parameter_declarations(func_node: Node) -> list[Node]:
    params = func_node.child_by_field_name("parameters")
    if params is None:
        return []
    return [child for child in code_children(params) if child.type in PARAMETER_TYPES]


def parameter_names(source_bytes: bytes, func_node: Node) -> list[str]:
    names = []
    for decl in parameter_declarations(func_node):
        names.extend(node_text(source_bytes, name) for name in decl.children_by_field_name("name"))
    return names


def resolve_server_type(source_bytes: bytes, func_node: Optional[Node]) -> str:
    """
    Type of the parameter named `server`, e.g. "GreeterServer".
    Empty when the function has no such parameter or its type is not a plain
    or package-qualified type name.
    """
    if func_node is None:
        return ""
    for decl in parameter_declarations(func_node):
        for name in decl.children_by_field_name("name"):
            if node_text(source_bytes, name) != SERVER_VAR:
                continue
            type_node = decl.child_by_field_name("type")
            if type_node is not None and type_node.type in SERVER_TYPE_NODES:
                return node_text(source_bytes, type_node)
    return ""


# --- Per-file walk state -----------------------------------------------------

@dataclass
class WalkState:
    """Everything one file's walk accumulates. Never shared between files."""
    plan: EditPlan = field(default_factory=EditPlan)
    rewrites: dict[str, CapturedRewrite] = field(default_factory=dict)
    last_rpc_method_name: str = ""
    server_type: str = ""
    # wrapper name -> method name seen before a call site an earlier run already rewrote
    rewritten_call_sites: dict[str, str] = field(default_factory=dict)
    # top-level functions that are not root functions, in source order
    functions: list[tuple[str, Node]] = field(default_factory=list)
    patched_roots: list[str] = field(default_factory=list)


# --- The Rewriter ------------------------------------------------------------

class GatewayRewriter:
    """
    Rewrites a protoc-gen-grpc-gateway file so that every local_request_* call
    goes through an optional grpc.UnaryServerInterceptor:
    root functions -> interceptor parameter, call sites -> wrapper calls,
    wrappers -> appended (stale ones from a previous run deleted first).
    """

    def __init__(self):
        self.language = load_go_language()
        self.parser = Parser(self.language)

    def parse(self, source: bytes) -> Tree:
        return self.parser.parse(source)

    def rewrite_source(self, source: bytes, file_index: FileIndex,
                       file_path: str = "<source>") -> RewriteResult:
        """
        Transforms one gateway file. Raises SourceParseError when the source
        does not parse cleanly; otherwise returns the new text and what changed.
        """
        tree = self.parse(source)
        root = tree.root_node

        error = first_error(root)
        if error is not None:
            line, col = node_point(error)
            raise SourceParseError(file_path, f"syntax error at line {line + 1}, column {col + 1}")

        state = WalkState()
        wrapper_names = {wrapper_function_name(name) for name in file_index.expected_calls}
        self._walk(source, root, file_index, wrapper_names, state)

        deleted = self._plan_stale_deletions(source, state)

        if state.rewrites and plan_import(root, source, state.plan, FMT_PACKAGE):
            logger.debug("%s: adding %s import", file_path, FMT_PACKAGE)

        rewritten = state.plan.apply(source)
        if state.rewrites:
            wrappers = []
            for rewrite in state.rewrites.values():
                if not rewrite.server_type:
                    rewrite.server_type = state.server_type
                wrappers.append(b"\n\n" + render_captured(rewrite).encode("utf-8"))
            rewritten = rewritten.rstrip() + b"".join(wrappers) + b"\n"

        logger.debug("%s: %d call sites rewritten, %d root functions patched, %d stale wrappers replaced",
                     file_path, len(state.rewrites), len(state.patched_roots), len(deleted))

        return RewriteResult(
            source=rewritten,
            rewrites=state.rewrites,
            patched_roots=state.patched_roots,
            deleted_functions=deleted,
            server_type=state.server_type,
        )

    # -- Walk -----------------------------------------------------------------

    def _walk(self, source_bytes: bytes, root: Node, file_index: FileIndex,
              wrapper_names: set[str], state: WalkState):
        """
        Source-order DFS. Tracks the enclosing top-level function so captured
        call sites know which `server` type surrounds them.
        """
        stack: list[tuple[Node, Optional[Node]]] = [(child, None) for child in reversed(root.children)]
        while stack:
            node, enclosing = stack.pop()

            if node.type == "function_declaration":
                self._visit_function(source_bytes, node, file_index, state)
                enclosing = node
            elif node.type in ASSIGNMENT_TYPES:
                self._visit_assignment(source_bytes, node, enclosing, file_index, wrapper_names, state)

            stack.extend((child, enclosing) for child in reversed(node.children))

    def _visit_function(self, source_bytes: bytes, node: Node, file_index: FileIndex, state: WalkState):
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = node_text(source_bytes, name_node)

        service = file_index.root_functions.get(name)
        if service is None:
            state.functions.append((name, node))
            return

        state.server_type = resolve_server_type(source_bytes, node)
        if not state.server_type:
            line, _ = node_point(node)
            logger.warning("%s (line %d) has no %r parameter with a named type",
                           name, line + 1, SERVER_VAR)
        if self._patch_signature(source_bytes, node, state.plan):
            state.patched_roots.append(name)
            logger.debug("root function %s (service %s): interceptor parameter added", name, service.name)

    def _patch_signature(self, source_bytes: bytes, func_node: Node, plan: EditPlan) -> bool:
        """
        Appends the interceptor parameter unless one is already declared.
        """
        if INTERCEPTOR_VAR in parameter_names(source_bytes, func_node):
            return False
        decls = parameter_declarations(func_node)
        if decls:
            plan.insert(decls[-1].end_byte, f", {INTERCEPTOR_PARAM}")
        else:
            params = func_node.child_by_field_name("parameters")
            plan.insert(params.start_byte + 1, INTERCEPTOR_PARAM)
        return True

    def _visit_assignment(self, source_bytes: bytes, node: Node, enclosing: Optional[Node],
                          file_index: FileIndex, wrapper_names: set[str], state: WalkState):
        right = node.child_by_field_name("right")
        if right is None:
            return
        exprs = code_children(right)
        if len(exprs) != 1 or exprs[0].type != "call_expression":
            return
        call = exprs[0]
        function = call.child_by_field_name("function")
        if function is None:
            return

        if function.type == "selector_expression":
            self._track_rpc_method_name(source_bytes, function, call, state)
        elif function.type == "identifier":
            call_name = node_text(source_bytes, function)
            if call_name in wrapper_names:
                # Already rewritten by an earlier run; remember which method it serves.
                state.rewritten_call_sites[call_name] = state.last_rpc_method_name
                return
            self._rewrite_call_site(source_bytes, node, call_name, enclosing, file_index, state)

    def _track_rpc_method_name(self, source_bytes: bytes, selector: Node, call: Node, state: WalkState):
        """
        runtime.AnnotateIncomingContext(ctx, mux, req, "/pkg.Svc/Method", ...):
        the string literal argument names the RPC of the next call site.
        """
        operand = selector.child_by_field_name("operand")
        member = selector.child_by_field_name("field")
        if operand is None or member is None or operand.type != "identifier":
            return
        if node_text(source_bytes, operand) != RUNTIME_PACKAGE:
            return
        if node_text(source_bytes, member) != ANNOTATE_INCOMING_CONTEXT:
            return
        arguments = call.child_by_field_name("arguments")
        if arguments is None:
            return
        for arg in code_children(arguments):
            if arg.type in STRING_LITERAL_TYPES:
                state.last_rpc_method_name = node_text(source_bytes, arg)

    def _rewrite_call_site(self, source_bytes: bytes, node: Node, call_name: str, enclosing: Optional[Node],
                           file_index: FileIndex, state: WalkState):
        wrapper_name = wrapper_function_name(call_name)
        if call_name not in file_index.expected_calls and wrapper_name not in state.rewrites:
            return

        state.plan.replace(node.start_byte, node.end_byte, render_call_site(wrapper_name))
        state.rewrites[wrapper_name] = CapturedRewrite(
            synthetic_function_name=wrapper_name,
            rpc_method_name=state.rewritten_call_sites.get(wrapper_name, state.last_rpc_method_name),
            original_assignment=node_text(source_bytes, node),
            server_type=resolve_server_type(source_bytes, enclosing),
        )
        line, col = node_point(node)
        logger.debug("call site %s at %d:%d -> %s", call_name, line + 1, col + 1, wrapper_name)

    # -- Stale output -----------------------------------------------------------

    def _plan_stale_deletions(self, source_bytes: bytes, state: WalkState) -> list[str]:
        """
        Deletes wrappers left by a previous run whose names are about to be
        generated again, together with the blank lines in front of them.
        """
        deleted = []
        for name, func_node in state.functions:
            if name not in state.rewrites:
                continue
            start = len(source_bytes[:func_node.start_byte].rstrip())
            state.plan.delete(start, func_node.end_byte)
            deleted.append(name)
        return deleted
