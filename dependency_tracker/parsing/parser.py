"""
TypeScript / JavaScript fact extraction using tree-sitter.

This module parses source files and extracts the plain facts the analysis
works on: exports, imports, interface declarations and type references,
fetch calls, hook calls, JSX form actions, server actions and hooks.
"""

import logging
import os
import re
import threading
from typing import Dict, List, Optional, Set, Tuple

import tree_sitter_typescript
from tree_sitter import Language, Parser

from ..core.entities import (
    HTTP_METHODS,
    DynamicUsage,
    Export,
    ExportCategory,
    Hook,
    Import,
    Interface,
    ParsedFile,
    PotentialInterfaceUsage,
    ProjectFacts,
    ServerAction,
    UsageKind,
    UsageSite,
)
from ..errors import AnalysisCancelled
from .routes import derive_routes

logger = logging.getLogger(__name__)


# --- PARSER SETUP ---
TS_LANGUAGE = Language(tree_sitter_typescript.language_typescript())
TSX_LANGUAGE = Language(tree_sitter_typescript.language_tsx())

ts_parser = Parser(TS_LANGUAGE)
tsx_parser = Parser(TSX_LANGUAGE)

# Plain .ts cannot contain JSX, and `<T>(x) => x` only parses without it
TS_ONLY_EXTENSIONS = (".ts", ".mts", ".cts")
COMPONENT_EXTENSIONS = (".tsx", ".jsx")

HOOK_NAME = re.compile(r"^use[A-Z0-9]")

SERVER_DIRECTIVE = "use server"

# Declarations whose `name` field is the exported binding
NAMED_DECLARATIONS = (
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "internal_module",
    "module",
)
TYPE_ONLY_DECLARATIONS = ("interface_declaration", "type_alias_declaration", "enum_declaration")
FUNCTION_DECLARATIONS = ("function_declaration", "generator_function_declaration")
VARIABLE_DECLARATIONS = ("lexical_declaration", "variable_declaration")
FUNCTION_VALUES = ("arrow_function", "function_expression", "function", "generator_function")

JSX_ACTION_ATTRIBUTES = {
    "action": UsageKind.FORM_ACTION,
    "formAction": UsageKind.ACTION_CALL,
}


def get_parser(file_path: str) -> Parser:
    """Pick the grammar for a file: TSX for everything but plain TypeScript."""
    if file_path.endswith(TS_ONLY_EXTENSIONS):
        return ts_parser
    return tsx_parser


# ─── Node helpers ─────────────────────────────────

def node_text(node) -> str:
    return node.text.decode("utf8", errors="replace")


def node_line(node) -> int:
    return node.start_point[0] + 1


def same_node(a, b) -> bool:
    return a is not None and b is not None and (a.start_byte, a.end_byte, a.type) == (b.start_byte, b.end_byte, b.type)


def string_value(node) -> Optional[str]:
    """Literal value of a string or substitution-free template string."""
    if node is None:
        return None
    if node.type == "string":
        return node_text(node)[1:-1]
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.named_children):
            return None
        return node_text(node)[1:-1]
    return None


def has_directive(block, directive: str) -> bool:
    """True if a program or statement block opens with the given directive prologue."""
    if block is None:
        return False
    for child in block.named_children:
        if child.type == "comment":
            continue
        if child.type != "expression_statement" or child.named_child_count == 0:
            return False
        expr = child.named_children[0]
        if expr.type != "string":
            return False
        if string_value(expr) == directive:
            return True
    return False


def function_body(node):
    """Body block of a function declaration or function-valued expression."""
    if node is None:
        return None
    body = node.child_by_field_name("body")
    if body is not None and body.type == "statement_block":
        return body
    return None


# ─── Imports ──────────────────────────────────────

def extract_import(node, file_path: str) -> Optional[Import]:
    """Extract an Import from an import_statement node."""
    source = string_value(node.child_by_field_name("source"))
    if source is None:
        # import x = require('y')
        return None

    imp = Import(importing_file=file_path, module_reference=source, line=node_line(node))

    clause = next((c for c in node.named_children if c.type == "import_clause"), None)
    if clause is None:
        return imp  # side-effect import

    for child in clause.named_children:
        if child.type == "identifier":
            imp.imported_names.append(node_text(child))
        elif child.type == "namespace_import":
            ident = next((c for c in child.named_children if c.type == "identifier"), None)
            if ident is not None:
                imp.namespace_name = node_text(ident)
        elif child.type == "named_imports":
            for spec in child.named_children:
                if spec.type != "import_specifier":
                    continue
                name_node = spec.child_by_field_name("name")
                alias_node = spec.child_by_field_name("alias")
                if name_node is None:
                    continue
                name = string_value(name_node) or node_text(name_node)
                if alias_node is not None:
                    bound = node_text(alias_node)
                    imp.aliases[bound] = name
                    imp.imported_names.append(bound)
                else:
                    imp.imported_names.append(name)
    return imp


# ─── Exports ──────────────────────────────────────

def _export_clause(node, file_path: str) -> List[Export]:
    """export { a, b as c } [from '...']"""
    exports = []
    line = node_line(node)
    for child in node.named_children:
        if child.type == "namespace_export":
            # export * as ns from '...'
            ident = next((c for c in child.named_children if c.type in ("identifier", "string")), None)
            if ident is not None:
                name = string_value(ident) or node_text(ident)
                exports.append(Export(name, file_path, line, local_name=name))
            continue
        if child.type != "export_clause":
            continue
        for spec in child.named_children:
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            if name_node is None:
                continue
            local = string_value(name_node) or node_text(name_node)
            exported = (string_value(alias_node) or node_text(alias_node)) if alias_node is not None else local
            if exported == "default":
                exports.append(Export("default", file_path, line, is_default=True, local_name=local))
            else:
                exports.append(Export(exported, file_path, line, local_name=local))
    return exports


def _declaration_exports(decl, file_path: str, is_default: bool, line: int) -> List[Export]:
    """Exports introduced by `export [default] <declaration>`."""
    if decl.type == "ambient_declaration":
        inner = next((c for c in decl.named_children if c.type in NAMED_DECLARATIONS + VARIABLE_DECLARATIONS), None)
        return _declaration_exports(inner, file_path, is_default, line) if inner is not None else []

    if decl.type in VARIABLE_DECLARATIONS:
        exports = []
        for declarator in decl.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            # Destructuring patterns are not tracked
            if name_node is None or name_node.type != "identifier":
                continue
            name = node_text(name_node)
            exports.append(Export(name, file_path, node_line(name_node), local_name=name))
        return exports

    if decl.type in NAMED_DECLARATIONS:
        name_node = decl.child_by_field_name("name")
        local = node_text(name_node) if name_node is not None else None
        decl_line = node_line(name_node) if name_node is not None else line
        if decl.type in TYPE_ONLY_DECLARATIONS:
            if is_default or local is None:
                return []
            return [Export(local, file_path, decl_line, local_name=local)]
        if is_default:
            return [Export("default", file_path, decl_line, is_default=True, local_name=local)]
        if local is None:
            return []
        return [Export(local, file_path, decl_line, local_name=local)]

    return []


def extract_exports(node, file_path: str) -> List[Export]:
    """Extract Exports from a top-level export_statement node."""
    line = node_line(node)
    is_default = any(child.type == "default" for child in node.children)

    decl = node.child_by_field_name("declaration")
    if decl is not None:
        return _declaration_exports(decl, file_path, is_default, line)

    if is_default:
        value = node.child_by_field_name("value")
        local = None
        if value is not None:
            if value.type == "identifier":
                local = node_text(value)
            elif value.child_by_field_name("name") is not None and value.type in FUNCTION_VALUES + ("class",):
                local = node_text(value.child_by_field_name("name"))
        return [Export("default", file_path, line, is_default=True, local_name=local)]

    # `export * from` re-exports are not followed
    return _export_clause(node, file_path)


def categorize_export(export: Export, file_path: str, server_action_names: Set[str]) -> ExportCategory:
    """Heuristic category used by reports."""
    stem, ext = os.path.splitext(os.path.basename(file_path))
    name = export.local_name or export.exported_name
    if stem == "route" and not export.is_default and export.exported_name in HTTP_METHODS:
        return ExportCategory.ROUTE_HANDLER
    if name in server_action_names:
        return ExportCategory.SERVER_ACTION
    if HOOK_NAME.match(name):
        return ExportCategory.HOOK
    if ext in COMPONENT_EXTENSIONS and (export.is_default or name[:1].isupper()):
        return ExportCategory.COMPONENT
    return ExportCategory.UTILITY


# ─── Server actions and hooks ─────────────────────

def _exported_functions(node) -> List[Tuple[str, object, int]]:
    """(name, function node, line) for each function an export statement declares."""
    decl = node.child_by_field_name("declaration")
    functions = []
    if decl is None:
        value = node.child_by_field_name("value")
        if value is not None and value.type in FUNCTION_VALUES and value.child_by_field_name("name") is not None:
            functions.append((node_text(value.child_by_field_name("name")), value, node_line(node)))
        return functions

    if decl.type in FUNCTION_DECLARATIONS:
        name_node = decl.child_by_field_name("name")
        if name_node is not None:
            functions.append((node_text(name_node), decl, node_line(node)))
    elif decl.type in VARIABLE_DECLARATIONS:
        for declarator in decl.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if name_node is None or name_node.type != "identifier" or value is None:
                continue
            if value.type in FUNCTION_VALUES:
                functions.append((node_text(name_node), value, node_line(declarator)))
    return functions


# ─── Type references ──────────────────────────────

def _is_declared_name(node) -> bool:
    parent = node.parent
    if parent is None:
        return False
    if parent.type == "type_parameter":
        return True
    return same_node(parent.child_by_field_name("name"), node)


def _type_reference(node) -> Optional[str]:
    """Identifier text if the node is a type reference or heritage identifier."""
    if node.type == "type_identifier":
        if _is_declared_name(node):
            return None
        return node_text(node)
    if node.type == "identifier" and node.parent is not None and node.parent.type == "extends_clause":
        return node_text(node)
    return None


# ─── Calls and JSX ────────────────────────────────

def _fetch_usage(node, file_path: str) -> Optional[DynamicUsage]:
    args = node.child_by_field_name("arguments")
    if args is None or args.type != "arguments" or args.named_child_count == 0:
        return None
    url = string_value(args.named_children[0])
    if url is None:
        return None

    method = "GET"
    if args.named_child_count > 1 and args.named_children[1].type == "object":
        for pair in args.named_children[1].named_children:
            if pair.type != "pair":
                continue
            key = pair.child_by_field_name("key")
            key_text = string_value(key) or node_text(key) if key is not None else None
            if key_text == "method":
                value = string_value(pair.child_by_field_name("value"))
                if value:
                    method = value.upper()
                break

    return DynamicUsage(UsageKind.NETWORK_CALL, url, file_path, node_line(node), http_method=method)


def _call_usage(node, file_path: str) -> Optional[DynamicUsage]:
    fn = node.child_by_field_name("function")
    if fn is None or fn.type != "identifier":
        return None
    name = node_text(fn)
    if name == "fetch":
        return _fetch_usage(node, file_path)
    if HOOK_NAME.match(name):
        return DynamicUsage(UsageKind.HOOK_CALL, name, file_path, node_line(node))
    return None


def _jsx_action_usage(node, file_path: str) -> Optional[DynamicUsage]:
    """`<form action={save}>` and `<button formAction={save}>`."""
    if node.named_child_count < 2:
        return None
    attr_name, value = node.named_children[0], node.named_children[1]
    kind = JSX_ACTION_ATTRIBUTES.get(node_text(attr_name))
    if kind is None or value.type != "jsx_expression":
        return None
    target = next((c for c in value.named_children if c.type == "identifier"), None)
    if target is None:
        return None
    return DynamicUsage(kind, node_text(target), file_path, node_line(node))


# ─── File / project ───────────────────────────────

def parse_source(source: bytes, file_path: str) -> ParsedFile:
    """
    Extract facts from source text.

    Args:
        source: File contents as bytes
        file_path: Absolute path recorded on every fact

    Returns:
        ParsedFile with all extracted facts
    """
    tree = get_parser(file_path).parse(source)
    root = tree.root_node
    result = ParsedFile(file_path=file_path)

    if root.has_error:
        logger.debug("Syntax errors in %s, extracting what parsed", file_path)

    file_is_server = has_directive(root, SERVER_DIRECTIVE)
    seen_type_refs: Set[Tuple[str, int]] = set()

    # Top-level statements: imports and exports
    for child in root.named_children:
        if child.type == "import_statement":
            imp = extract_import(child, file_path)
            if imp is not None:
                result.imports.append(imp)
        elif child.type == "export_statement":
            result.exports.extend(extract_exports(child, file_path))
            for name, fn, line in _exported_functions(child):
                if file_is_server or has_directive(function_body(fn), SERVER_DIRECTIVE):
                    result.server_actions.append(ServerAction(name, file_path, line))
                if HOOK_NAME.match(name):
                    result.hooks.append(Hook(name, file_path, line))

    # Whole tree: interfaces, type references, dynamic usages
    stack = [root]
    while stack:
        node = stack.pop()
        node_type = node.type

        if node_type == "interface_declaration":
            name_node = node.child_by_field_name("name")
            if name_node is not None:
                result.interfaces.append(Interface(node_text(name_node), file_path, node_line(name_node)))
        elif node_type == "call_expression":
            usage = _call_usage(node, file_path)
            if usage is not None:
                result.dynamic_usages.append(usage)
        elif node_type == "jsx_attribute":
            usage = _jsx_action_usage(node, file_path)
            if usage is not None:
                result.dynamic_usages.append(usage)
        else:
            ref = _type_reference(node)
            if ref is not None and (ref, node_line(node)) not in seen_type_refs:
                seen_type_refs.add((ref, node_line(node)))
                result.potential_interface_usages.append(
                    PotentialInterfaceUsage(ref, UsageSite(file_path, node_line(node)))
                )

        stack.extend(reversed(node.children))

    server_names = {a.name for a in result.server_actions}
    for exp in result.exports:
        exp.category = categorize_export(exp, file_path, server_names)

    return result


def parse_file(file_path: str) -> ParsedFile:
    """
    Parse a source file and extract all facts.

    Args:
        file_path: Path to the .ts/.tsx/.js/.jsx file

    Returns:
        ParsedFile; parse_success is False if the file could not be read
    """
    try:
        with open(file_path, "rb") as f:
            source = f.read()
    except OSError as e:
        return ParsedFile(
            file_path=file_path,
            parse_success=False,
            parse_errors=[str(e)],
        )
    return parse_source(source, file_path)


def parse_project(
    files: List[str],
    project_root: str,
    cancel_event: Optional[threading.Event] = None,
) -> ProjectFacts:
    """
    Parse every file and derive routes.

    Per-file failures are recorded in `parse_errors` and the file is skipped.

    Raises:
        AnalysisCancelled: if cancel_event is set between files
    """
    facts = ProjectFacts()
    exports_by_file: Dict[str, List[Export]] = {}

    logger.info("Starting AST parsing for %d files...", len(files))
    for file_path in files:
        if cancel_event is not None and cancel_event.is_set():
            raise AnalysisCancelled("Cancelled during extraction")

        rel = os.path.relpath(file_path, project_root).replace("\\", "/")
        try:
            parsed = parse_file(file_path)
        except (ValueError, RuntimeError) as e:
            logger.error("Failed to parse %s: %s", rel, e)
            facts.parse_errors.append(f"Parse Error: {rel} - {e}")
            continue

        if not parsed.parse_success:
            logger.error("Failed to parse %s: %s", rel, "; ".join(parsed.parse_errors))
            facts.parse_errors.append(f"Parse Error: {rel} - {'; '.join(parsed.parse_errors)}")
            continue

        facts.add(parsed)
        exports_by_file[file_path] = parsed.exports

    facts.routes = derive_routes(files, project_root, exports_by_file)
    logger.info(
        "Extracted %d exports, %d imports, %d interfaces, %d routes from %d files",
        len(facts.exports), len(facts.imports), len(facts.interfaces), len(facts.routes), facts.file_count,
    )
    return facts
