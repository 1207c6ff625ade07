"""
Oberon-07 Module Outline - Pure Functional Style
Reads a module's name, imports and declared names off the concrete parse tree.
No type checking and no scoped symbol table.
"""

from typing import Dict, List, Optional

from parsing import ParseNode


SECTION_LABELS = {
    'declarationSequence_constSequence': ('constants', 'constDeclaration'),
    'declarationSequence_typeDeclaration': ('types', 'typeDeclaration'),
    'declarationSequence_varDeclaration': ('variables', 'varDeclaration'),
    'declarationSequence_procedureDeclaration': ('procedures', 'procedureDeclaration'),
}


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_import(alias: str, module: str) -> Dict:
  """Create an import entry; alias equals module when no ':=' was written"""
  return {
      'alias': alias,
      'module': module
  }


def make_declaration(name: str, exported: bool, line: int) -> Dict:
  """Create a declared-name entry"""
  return {
      'name': name,
      'exported': exported,
      'line': line
  }


def make_outline(name: str, imports: Optional[List[Dict]] = None,
                 declarations: Optional[Dict[str, List[Dict]]] = None) -> Dict:
  """Create a module outline dictionary"""
  return {
      'name': name,
      'imports': imports or [],
      'declarations': declarations or {section: [] for section, _ in SECTION_LABELS.values()}
  }


# ============================================================================
# TREE ACCESS (Pure Functions)
# ============================================================================

def children_labelled(node: ParseNode, label: str) -> List[ParseNode]:
  """Direct children of node carrying label"""
  return [child for child in node.children if child.label == label]


def first_child(node: ParseNode, label: str) -> Optional[ParseNode]:
  matches = children_labelled(node, label)
  return matches[0] if matches else None


def ident_defs_of(declaration: ParseNode) -> List[ParseNode]:
  """identDef nodes introduced by one declaration, in order"""
  head = declaration.children[0]
  if head.label == 'identDef':
    return [head]
  if head.label == 'identList':
    return children_labelled(head, 'identDef')
  if head.label == 'procedureHeading':
    return children_labelled(head, 'identDef')
  return []


def declaration_from_ident_def(ident_def: ParseNode) -> Dict:
  ident = ident_def.children[0]
  exported = len(ident_def.children) > 1
  line = ident.token.line if ident.token else 0
  return make_declaration(ident.label, exported, line)


# ============================================================================
# OUTLINE EXTRACTION
# ============================================================================

def analyze_imports(module: ParseNode) -> List[Dict]:
  """Collect (alias, module) pairs from the import list, if any"""
  import_list = first_child(module, 'importList')
  if import_list is None:
    return []

  imports = []
  for import_node in children_labelled(import_list, 'import'):
    names = [child.label for child in import_node.children if child.is_terminal and child.label != ':=']
    alias = names[0]
    imported = names[-1]
    imports.append(make_import(alias, imported))
  return imports


def analyze_declarations(declarations: ParseNode, debug: bool = False) -> Dict[str, List[Dict]]:
  """Names declared in one declarationSequence, grouped by section"""
  result = {section: [] for section, _ in SECTION_LABELS.values()}

  for block in declarations.children:
    if block.label not in SECTION_LABELS:
      continue
    section, declaration_label = SECTION_LABELS[block.label]
    for declaration in children_labelled(block, declaration_label):
      for ident_def in ident_defs_of(declaration):
        entry = declaration_from_ident_def(ident_def)
        if debug:
          print(f"DEBUG: {section}: {entry['name']}{'*' if entry['exported'] else ''}")
        result[section].append(entry)

  return result


def analyze_module(tree: ParseNode, debug: bool = False) -> Dict:
  """Outline a parsed module: name, imports and top-level declarations"""
  if not isinstance(tree, ParseNode) or tree.label != 'module':
    label = tree.label if isinstance(tree, ParseNode) else type(tree).__name__
    raise OberonSemanticsError(f"expected a module parse tree, got '{label}'")

  name = tree.children[1].label
  if debug:
    print(f"DEBUG: Analyzing module {name}")

  declarations = first_child(tree, 'declarationSequence')
  if declarations is None:
    raise OberonSemanticsError(f"module {name} has no declarationSequence")

  return make_outline(
      name,
      analyze_imports(tree),
      analyze_declarations(declarations, debug)
  )


def format_outline(outline: Dict) -> str:
  """Render an outline as indented text"""
  lines = [f"MODULE {outline['name']}"]
  if outline['imports']:
    rendered = [
        entry['module'] if entry['alias'] == entry['module'] else f"{entry['alias']} := {entry['module']}"
        for entry in outline['imports']
    ]
    lines.append(f"  IMPORT {', '.join(rendered)}")
  for section, entries in outline['declarations'].items():
    if entries:
      names = ', '.join(entry['name'] + ('*' if entry['exported'] else '') for entry in entries)
      lines.append(f"  {section}: {names}")
  return '\n'.join(lines)


# ============================================================================
# EXCEPTION CLASS
# ============================================================================

class OberonSemanticsError(Exception):
  """Raised when a tree cannot be outlined"""

  def __init__(self, message: str):
    self.message = message
    super().__init__(f"Semantics error: {message}")


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_analyzer(debug: bool = False):
  """Factory function returning an analyzer object"""
  return type('Analyzer', (), {
      'debug': debug,
      'analyze_module': lambda self, tree: analyze_module(tree, debug),
      'format_outline': lambda self, outline: format_outline(outline)
  })()


def create_debug_analyzer():
  """Factory function returning a debug analyzer"""
  return create_analyzer(debug=True)
