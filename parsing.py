"""
Oberon-07 Parser
Recursive-descent parser with backtracking producing a concrete parse tree
whose shape mirrors the grammar; every consumed token becomes one leaf
"""

import functools
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union

from error_handling import ErrorKind, LexError, ParseError
from scanning import Token, TokenKind, tokenize
from utilities import Tracer, make_print_tracer, read_source


DEFAULT_MAX_DEPTH = 256

IDENT_KINDS = (TokenKind.IDENTIFIER, TokenKind.PREDEFINED)

RELATION_OPERATORS = ("=", "#", "<", "<=", ">", ">=")
RELATION_WORDS = ("IN", "IS")
ADD_OPERATORS = ("+", "-")
ADD_WORDS = ("OR",)
MUL_OPERATORS = ("*", "/", "&")
MUL_WORDS = ("DIV", "MOD")

# label -> method name, filled in by @production
PRODUCTIONS: Dict[str, str] = {}

# grammar names that share another production's node
ALIASES = {
    "constExpression": "const_expression",
    "length": "length",
    "baseType": "base_type",
}


@dataclass
class ParseNode:
    """Concrete parse tree node; leaves carry the token they were built from"""
    label: str
    children: List['ParseNode'] = field(default_factory=list)
    token: Optional[Token] = field(default=None, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.token is not None

    def add(self, *children: Optional['ParseNode']) -> 'ParseNode':
        """Append children in order, skipping absent optional parts"""
        for child in children:
            if child is not None:
                self.children.append(child)
        return self

    def __str__(self) -> str:
        if self.children:
            children_str = ", ".join(str(child) for child in self.children)
            return f"{self.label}([{children_str}])"
        return self.label


class TokenCursor:
    """The single shared index into the token list"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0

    def current(self) -> Optional[Token]:
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def at_end(self) -> bool:
        return self.position >= len(self.tokens)

    def advance(self) -> Token:
        token = self.tokens[self.position]
        self.position += 1
        return token


def describe_token(token: Token) -> str:
    return f"'{token.text}' ({token.kind.value}) at line {token.line}, column {token.column}"


def production(label: str):
    """
    Wrap a production method with the checkpoint law: the cursor is restored
    whenever the production returns None or raises. Also narrates progress to
    the tracer and bounds the nesting depth.
    """
    def decorate(method: Callable[..., Optional[ParseNode]]):
        PRODUCTIONS[label] = method.__name__

        @functools.wraps(method)
        def wrapper(self: 'OberonParser', *args: Any) -> Optional[ParseNode]:
            checkpoint = self.cursor.position
            if self._depth >= self.max_depth:
                raise self._error(ErrorKind.NESTING_TOO_DEEP,
                                  f"parse error: nesting deeper than {self.max_depth} productions at {label}")
            self._depth += 1
            self._trace(f"Attempting to match {label}")
            try:
                node = method(self, *args)
            except ParseError:
                self.cursor.position = checkpoint
                raise
            finally:
                self._depth -= 1
            if node is None:
                self.cursor.position = checkpoint
                self._trace(f"Did not match {label}")
            else:
                self._trace(f"Matched {label}")
            return node

        wrapper.label = label
        return wrapper
    return decorate


class OberonParser:
    """Parser over one token list; each public production method parses at the cursor"""

    def __init__(self, tokens: List[Token], tracer: Optional[Tracer] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH):
        self.cursor = TokenCursor(tokens)
        self.tracer = tracer
        self.max_depth = max_depth
        self._depth = 0

    # ------------------------------------------------------------------
    # Entry points

    def parse(self) -> ParseNode:
        """Parse one module and require that every token was consumed"""
        tree = self.module()
        self._require_end()
        return tree

    def parse_rule(self, name: str) -> ParseNode:
        """Parse a single production (by label or method name) covering all tokens"""
        method_name = PRODUCTIONS.get(name) or ALIASES.get(name) or name
        method = getattr(self, method_name, None)
        if method is None or not callable(method):
            raise ValueError(f"Unknown production: {name}")
        node = method()
        if node is None:
            raise self._expected(name)
        self._require_end()
        return node

    def _require_end(self) -> None:
        if not self.cursor.at_end():
            position = self.cursor.position
            token = self.cursor.current()
            raise ParseError(
                ErrorKind.TRAILING_TOKEN,
                f"parse error: unparsed token: {token.text} at (line: {token.line}, "
                f"column: {token.column}), token number: {position}",
                token.line, token.column, position, token.text,
            )

    # ------------------------------------------------------------------
    # Terminals

    def _leaf(self) -> ParseNode:
        token = self.cursor.advance()
        return ParseNode(token.text, token=token)

    def match_reserved_word(self, word: str) -> Optional[ParseNode]:
        token = self.cursor.current()
        if token is not None and token.kind is TokenKind.RESERVED_WORD and token.text == word:
            return self._leaf()
        return None

    def match_operator(self, operator: str) -> Optional[ParseNode]:
        token = self.cursor.current()
        if token is not None and token.kind is TokenKind.OPERATOR_OR_DELIMITER and token.text == operator:
            return self._leaf()
        return None

    def match_kind(self, *kinds: TokenKind) -> Optional[ParseNode]:
        token = self.cursor.current()
        if token is not None and token.kind in kinds:
            return self._leaf()
        return None

    def match_ident(self) -> Optional[ParseNode]:
        # predefined identifiers (INTEGER, NEW, ...) are ordinary identifiers to the grammar
        return self.match_kind(*IDENT_KINDS)

    def _match_any(self, operators=(), words=()) -> Optional[ParseNode]:
        for operator in operators:
            node = self.match_operator(operator)
            if node is not None:
                return node
        for word in words:
            node = self.match_reserved_word(word)
            if node is not None:
                return node
        return None

    def _match_all(self, *steps: Callable[[], Optional[ParseNode]]) -> Optional[List[ParseNode]]:
        """Match every step in order, or restore the cursor and match none"""
        checkpoint = self.cursor.position
        nodes = []
        for step in steps:
            node = step()
            if node is None:
                self.cursor.position = checkpoint
                return None
            nodes.append(node)
        return nodes

    # ------------------------------------------------------------------
    # Errors and tracing

    def _error(self, kind: ErrorKind, message: str) -> ParseError:
        token = self.cursor.current()
        if token is None:
            return ParseError(kind, message, token_index=self.cursor.position)
        return ParseError(kind, message, token.line, token.column, self.cursor.position, token.text)

    def _expected(self, what: str) -> ParseError:
        token = self.cursor.current()
        if token is None:
            last = self.cursor.tokens[-1] if self.cursor.tokens else None
            error = ParseError(ErrorKind.UNEXPECTED_END,
                               f"parse error: expected {what}, but reached end of stream",
                               token_index=self.cursor.position)
            if last is not None:
                error.line, error.column = last.line, last.column + len(last.text)
            return error
        return self._error(ErrorKind.UNEXPECTED_TOKEN,
                           f"parse error: expected {what}, found {describe_token(token)}")

    def expect(self, node: Optional[ParseNode], what: str) -> ParseNode:
        """Turn a committed element's no-match into a ParseError"""
        if node is None:
            raise self._expected(what)
        return node

    def expect_operator(self, operator: str) -> ParseNode:
        return self.expect(self.match_operator(operator), f"'{operator}'")

    def expect_reserved_word(self, word: str) -> ParseNode:
        return self.expect(self.match_reserved_word(word), f"'{word}'")

    def expect_ident(self, what: str = "ident") -> ParseNode:
        return self.expect(self.match_ident(), what)

    def _trace(self, message: str) -> None:
        if self.tracer is None:
            return
        token = self.cursor.current()
        current = str(token) if token is not None else "<end of stream>"
        self.tracer(f"{message} (current_token: {current}, position: {self.cursor.position})")

    # ------------------------------------------------------------------
    # Module and declarations

    @production("module")
    def module(self) -> Optional[ParseNode]:
        """module = MODULE ident ";" [ImportList] DeclarationSequence [BEGIN StatementSequence] END ident "." ."""
        node = ParseNode("module")
        node.add(self.expect_reserved_word("MODULE"))
        name = self.expect_ident("module name")
        node.add(name, self.expect_operator(";"))
        node.add(self.import_list())
        node.add(self.expect(self.declaration_sequence(), "declarationSequence"))

        begin = self.match_reserved_word("BEGIN")
        if begin is not None:
            node.add(begin, self.expect(self.statement_sequence(), "statementSequence"))

        node.add(self.expect_reserved_word("END"))
        node.add(self._closing_name(name, "module"))
        node.add(self.expect_operator("."))
        return node

    def _closing_name(self, name: ParseNode, what: str) -> ParseNode:
        closing = self.expect_ident(f"{what} name '{name.label}'")
        if closing.label != name.label:
            token = closing.token
            raise ParseError(
                ErrorKind.NAME_MISMATCH,
                f"parse error: {what} name mismatch: '{name.label}' is closed by '{closing.label}' "
                f"at line {token.line}, column {token.column}",
                token.line, token.column, self.cursor.position - 1, token.text,
            )
        return closing

    @production("importList")
    def import_list(self) -> Optional[ParseNode]:
        """ImportList = IMPORT import {"," import} ";" ."""
        keyword = self.match_reserved_word("IMPORT")
        if keyword is None:
            return None
        node = ParseNode("importList", [keyword])
        node.add(self.expect(self.import_(), "import"))
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect(self.import_(), "import"))
        return node.add(self.expect_operator(";"))

    @production("import")
    def import_(self) -> Optional[ParseNode]:
        """import = ident [":=" ident] ."""
        ident = self.match_ident()
        if ident is None:
            return None
        node = ParseNode("import", [ident])
        becomes = self.match_operator(":=")
        if becomes is not None:
            node.add(becomes, self.expect_ident("imported module name"))
        return node

    @production("declarationSequence")
    def declaration_sequence(self) -> Optional[ParseNode]:
        """DeclarationSequence = [CONST ...] [TYPE ...] [VAR ...] {ProcedureDeclaration ";"} ."""
        return ParseNode("declarationSequence").add(
            self.const_sequence(),
            self.type_sequence(),
            self.var_sequence(),
            self.procedure_sequence(),
        )

    def _declaration_block(self, label: str, keyword: str,
                           declaration: Callable[[], Optional[ParseNode]]) -> Optional[ParseNode]:
        keyword_node = self.match_reserved_word(keyword)
        if keyword_node is None:
            return None
        node = ParseNode(label, [keyword_node])
        while True:
            declaration_node = declaration()
            if declaration_node is None:
                break
            node.add(declaration_node, self.expect_operator(";"))
        return node

    @production("declarationSequence_constSequence")
    def const_sequence(self) -> Optional[ParseNode]:
        return self._declaration_block("declarationSequence_constSequence", "CONST", self.const_declaration)

    @production("declarationSequence_typeDeclaration")
    def type_sequence(self) -> Optional[ParseNode]:
        return self._declaration_block("declarationSequence_typeDeclaration", "TYPE", self.type_declaration)

    @production("declarationSequence_varDeclaration")
    def var_sequence(self) -> Optional[ParseNode]:
        return self._declaration_block("declarationSequence_varDeclaration", "VAR", self.var_declaration)

    @production("declarationSequence_procedureDeclaration")
    def procedure_sequence(self) -> Optional[ParseNode]:
        node = ParseNode("declarationSequence_procedureDeclaration")
        while True:
            declaration = self.procedure_declaration()
            if declaration is None:
                break
            node.add(declaration, self.expect_operator(";"))
        return node if node.children else None

    @production("constDeclaration")
    def const_declaration(self) -> Optional[ParseNode]:
        """ConstDeclaration = identdef "=" ConstExpression ."""
        ident_def = self.ident_def()
        if ident_def is None:
            return None
        return ParseNode("constDeclaration", [ident_def]).add(
            self.expect_operator("="),
            self.expect(self.const_expression(), "constExpression"),
        )

    @production("typeDeclaration")
    def type_declaration(self) -> Optional[ParseNode]:
        """TypeDeclaration = identdef "=" type ."""
        ident_def = self.ident_def()
        if ident_def is None:
            return None
        return ParseNode("typeDeclaration", [ident_def]).add(
            self.expect_operator("="),
            self.expect(self.type_(), "type"),
        )

    @production("varDeclaration")
    def var_declaration(self) -> Optional[ParseNode]:
        """VariableDeclaration = IdentList ":" type ."""
        ident_list = self.ident_list()
        if ident_list is None:
            return None
        return ParseNode("varDeclaration", [ident_list]).add(
            self.expect_operator(":"),
            self.expect(self.type_(), "type"),
        )

    @production("procedureDeclaration")
    def procedure_declaration(self) -> Optional[ParseNode]:
        """ProcedureDeclaration = ProcedureHeading ";" ProcedureBody ident ."""
        heading = self.procedure_heading()
        if heading is None:
            return None
        node = ParseNode("procedureDeclaration", [heading])
        node.add(self.expect_operator(";"))
        node.add(self.expect(self.procedure_body(), "procedureBody"))
        name = heading.children[1].children[0]
        return node.add(self._closing_name(name, "procedure"))

    @production("procedureHeading")
    def procedure_heading(self) -> Optional[ParseNode]:
        """ProcedureHeading = PROCEDURE identdef [FormalParameters] ."""
        keyword = self.match_reserved_word("PROCEDURE")
        if keyword is None:
            return None
        return ParseNode("procedureHeading", [keyword]).add(
            self.expect(self.ident_def(), "identDef"),
            self.formal_parameters(),
        )

    @production("procedureBody")
    def procedure_body(self) -> Optional[ParseNode]:
        """ProcedureBody = DeclarationSequence [BEGIN StatementSequence] [RETURN expression] END ."""
        node = ParseNode("procedureBody", [self.declaration_sequence()])
        begin = self.match_reserved_word("BEGIN")
        if begin is not None:
            node.add(begin, self.expect(self.statement_sequence(), "statementSequence"))
        return_ = self.match_reserved_word("RETURN")
        if return_ is not None:
            node.add(return_, self.expect(self.expression(), "expression"))
        return node.add(self.expect_reserved_word("END"))

    # ------------------------------------------------------------------
    # Types

    @production("type")
    def type_(self) -> Optional[ParseNode]:
        """type = qualident | StrucType ."""
        child = self.qualident() or self.struc_type()
        if child is None:
            return None
        return ParseNode("type", [child])

    @production("strucType")
    def struc_type(self) -> Optional[ParseNode]:
        """StrucType = ArrayType | RecordType | PointerType | ProcedureType ."""
        for alternative in (self.array_type, self.record_type, self.pointer_type, self.procedure_type):
            child = alternative()
            if child is not None:
                return ParseNode("strucType", [child])
        return None

    @production("arrayType")
    def array_type(self) -> Optional[ParseNode]:
        """ArrayType = ARRAY length {"," length} OF type ."""
        keyword = self.match_reserved_word("ARRAY")
        if keyword is None:
            return None
        node = ParseNode("arrayType", [keyword])
        node.add(self.expect(self.length(), "length"))
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect(self.length(), "length"))
        return node.add(
            self.expect_reserved_word("OF"),
            self.expect(self.type_(), "type"),
        )

    def length(self) -> Optional[ParseNode]:
        """length = ConstExpression ."""
        return self.const_expression()

    @production("recordType")
    def record_type(self) -> Optional[ParseNode]:
        """RecordType = RECORD ["(" BaseType ")"] [FieldListSequence] END ."""
        keyword = self.match_reserved_word("RECORD")
        if keyword is None:
            return None
        node = ParseNode("recordType", [keyword])
        left_paren = self.match_operator("(")
        if left_paren is not None:
            node.add(
                left_paren,
                self.expect(self.base_type(), "baseType"),
                self.expect_operator(")"),
            )
        node.add(self.field_list_sequence())
        return node.add(self.expect_reserved_word("END"))

    def base_type(self) -> Optional[ParseNode]:
        """BaseType = qualident ."""
        return self.qualident()

    @production("fieldListSequence")
    def field_list_sequence(self) -> Optional[ParseNode]:
        """FieldListSequence = FieldList {";" FieldList} ."""
        field_list = self.field_list()
        if field_list is None:
            return None
        node = ParseNode("fieldListSequence", [field_list])
        while True:
            semicolon = self.match_operator(";")
            if semicolon is None:
                break
            node.add(semicolon)
            # a trailing ";" before END is tolerated
            field_list = self.field_list()
            if field_list is None:
                break
            node.add(field_list)
        return node

    @production("fieldList")
    def field_list(self) -> Optional[ParseNode]:
        """FieldList = IdentList ":" type ."""
        ident_list = self.ident_list()
        if ident_list is None:
            return None
        return ParseNode("fieldList", [ident_list]).add(
            self.expect_operator(":"),
            self.expect(self.type_(), "type"),
        )

    @production("identList")
    def ident_list(self) -> Optional[ParseNode]:
        """IdentList = identdef {"," identdef} ."""
        ident_def = self.ident_def()
        if ident_def is None:
            return None
        node = ParseNode("identList", [ident_def])
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect(self.ident_def(), "identDef"))
        return node

    @production("identDef")
    def ident_def(self) -> Optional[ParseNode]:
        """identdef = ident ["*"] ."""
        ident = self.match_ident()
        if ident is None:
            return None
        return ParseNode("identDef", [ident]).add(self.match_operator("*"))

    @production("pointerType")
    def pointer_type(self) -> Optional[ParseNode]:
        """PointerType = POINTER TO type ."""
        keyword = self.match_reserved_word("POINTER")
        if keyword is None:
            return None
        return ParseNode("pointerType", [keyword]).add(
            self.expect_reserved_word("TO"),
            self.expect(self.type_(), "type"),
        )

    @production("procedureType")
    def procedure_type(self) -> Optional[ParseNode]:
        """ProcedureType = PROCEDURE [FormalParameters] ."""
        keyword = self.match_reserved_word("PROCEDURE")
        if keyword is None:
            return None
        return ParseNode("procedureType", [keyword]).add(self.formal_parameters())

    @production("formalParameters")
    def formal_parameters(self) -> Optional[ParseNode]:
        """FormalParameters = "(" [FPSection {";" FPSection}] ")" [":" qualident] ."""
        left_paren = self.match_operator("(")
        if left_paren is None:
            return None
        node = ParseNode("formalParameters", [left_paren])
        section = self.fp_section()
        if section is not None:
            node.add(section)
            while True:
                semicolon = self.match_operator(";")
                if semicolon is None:
                    break
                node.add(semicolon, self.expect(self.fp_section(), "fpSection"))
        node.add(self.expect_operator(")"))
        colon = self.match_operator(":")
        if colon is not None:
            node.add(colon, self.expect(self.qualident(), "qualident"))
        return node

    @production("fpSection")
    def fp_section(self) -> Optional[ParseNode]:
        """FPSection = [VAR] ident {"," ident} ":" FormalType ."""
        var = self.match_reserved_word("VAR")
        ident = self.match_ident()
        if ident is None:
            if var is None:
                return None
            raise self._expected("ident")
        node = ParseNode("fpSection").add(var, ident)
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect_ident())
        return node.add(
            self.expect_operator(":"),
            self.expect(self.formal_type(), "formalType"),
        )

    @production("formalType")
    def formal_type(self) -> Optional[ParseNode]:
        """FormalType = {ARRAY OF} qualident ."""
        node = ParseNode("formalType")
        while True:
            array = self.match_reserved_word("ARRAY")
            if array is None:
                break
            node.add(array, self.expect_reserved_word("OF"))
        qualident = self.qualident()
        if qualident is None:
            if not node.children:
                return None
            raise self._expected("qualident")
        return node.add(qualident)

    # ------------------------------------------------------------------
    # Statements

    @production("statementSequence")
    def statement_sequence(self) -> Optional[ParseNode]:
        """StatementSequence = statement {";" statement} ."""
        statement = self.statement()
        if statement is None:
            return None
        node = ParseNode("statementSequence", [statement])
        # the last statement may be followed by a ";"
        while True:
            semicolon = self.match_operator(";")
            if semicolon is None:
                break
            node.add(semicolon)
            statement = self.statement()
            if statement is None:
                break
            node.add(statement)
        return node

    @production("statement")
    def statement(self) -> Optional[ParseNode]:
        """statement = assignment | ProcedureCall | IfStatement | CaseStatement | WhileStatement | RepeatStatement | ForStatement ."""
        for alternative in (self.assignment, self.procedure_call, self.if_statement, self.case_statement,
                            self.while_statement, self.repeat_statement, self.for_statement):
            child = alternative()
            if child is not None:
                return ParseNode("statement", [child])
        return None

    @production("assignment")
    def assignment(self) -> Optional[ParseNode]:
        """assignment = designator ":=" expression ."""
        steps = self._match_all(self.designator, partial(self.match_operator, ":="))
        if steps is None:
            return None
        return ParseNode("assignment", steps).add(self.expect(self.expression(), "expression"))

    @production("procedureCall")
    def procedure_call(self) -> Optional[ParseNode]:
        """ProcedureCall = designator [ActualParameters] ."""
        designator = self.designator()
        if designator is None:
            return None
        return ParseNode("procedureCall", [designator]).add(self.actual_parameters())

    @production("ifStatement")
    def if_statement(self) -> Optional[ParseNode]:
        """IfStatement = IF expression THEN StatementSequence {ELSIF ...} [ELSE StatementSequence] END ."""
        keyword = self.match_reserved_word("IF")
        if keyword is None:
            return None
        node = ParseNode("ifStatement", [keyword])
        self._guarded_branch(node, "THEN")
        while True:
            elsif = self.match_reserved_word("ELSIF")
            if elsif is None:
                break
            node.add(elsif)
            self._guarded_branch(node, "THEN")
        else_ = self.match_reserved_word("ELSE")
        if else_ is not None:
            node.add(else_, self.expect(self.statement_sequence(), "statementSequence"))
        return node.add(self.expect_reserved_word("END"))

    def _guarded_branch(self, node: ParseNode, keyword: str) -> None:
        node.add(
            self.expect(self.expression(), "expression"),
            self.expect_reserved_word(keyword),
            self.expect(self.statement_sequence(), "statementSequence"),
        )

    @production("caseStatement")
    def case_statement(self) -> Optional[ParseNode]:
        """CaseStatement = CASE expression OF case {"|" case} END ."""
        keyword = self.match_reserved_word("CASE")
        if keyword is None:
            return None
        node = ParseNode("caseStatement", [keyword])
        node.add(
            self.expect(self.expression(), "expression"),
            self.expect_reserved_word("OF"),
            self.expect(self.case(), "case"),
        )
        while True:
            bar = self.match_operator("|")
            if bar is None:
                break
            node.add(bar, self.expect(self.case(), "case"))
        return node.add(self.expect_reserved_word("END"))

    @production("case")
    def case(self) -> Optional[ParseNode]:
        """case = [CaseLabelList ":" StatementSequence] ."""
        node = ParseNode("case")
        label_list = self.case_label_list()
        if label_list is None:
            # an empty case is legal
            return node
        return node.add(
            label_list,
            self.expect_operator(":"),
            self.expect(self.statement_sequence(), "statementSequence"),
        )

    @production("caseLabelList")
    def case_label_list(self) -> Optional[ParseNode]:
        """CaseLabelList = LabelRange {"," LabelRange} ."""
        label_range = self.label_range()
        if label_range is None:
            return None
        node = ParseNode("caseLabelList", [label_range])
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect(self.label_range(), "labelRange"))
        return node

    @production("labelRange")
    def label_range(self) -> Optional[ParseNode]:
        """LabelRange = label [".." label] ."""
        label = self.label()
        if label is None:
            return None
        node = ParseNode("labelRange", [label])
        range_ = self.match_operator("..")
        if range_ is not None:
            node.add(range_, self.expect(self.label(), "label"))
        return node

    @production("label")
    def label(self) -> Optional[ParseNode]:
        """label = integer | string | qualident ."""
        child = self.match_kind(TokenKind.INTEGER, TokenKind.STRING) or self.qualident()
        if child is None:
            return None
        return ParseNode("label", [child])

    @production("whileStatement")
    def while_statement(self) -> Optional[ParseNode]:
        """WhileStatement = WHILE expression DO StatementSequence {ELSIF expression DO StatementSequence} END ."""
        keyword = self.match_reserved_word("WHILE")
        if keyword is None:
            return None
        node = ParseNode("whileStatement", [keyword])
        self._guarded_branch(node, "DO")
        while True:
            elsif = self.match_reserved_word("ELSIF")
            if elsif is None:
                break
            node.add(elsif)
            self._guarded_branch(node, "DO")
        return node.add(self.expect_reserved_word("END"))

    @production("repeatStatement")
    def repeat_statement(self) -> Optional[ParseNode]:
        """RepeatStatement = REPEAT StatementSequence UNTIL expression ."""
        keyword = self.match_reserved_word("REPEAT")
        if keyword is None:
            return None
        return ParseNode("repeatStatement", [keyword]).add(
            self.expect(self.statement_sequence(), "statementSequence"),
            self.expect_reserved_word("UNTIL"),
            self.expect(self.expression(), "expression"),
        )

    @production("forStatement")
    def for_statement(self) -> Optional[ParseNode]:
        """ForStatement = FOR ident ":=" expression TO expression [BY ConstExpression] DO StatementSequence END ."""
        keyword = self.match_reserved_word("FOR")
        if keyword is None:
            return None
        node = ParseNode("forStatement", [keyword])
        node.add(
            self.expect_ident("control variable"),
            self.expect_operator(":="),
            self.expect(self.expression(), "expression"),
            self.expect_reserved_word("TO"),
            self.expect(self.expression(), "expression"),
        )
        by = self.match_reserved_word("BY")
        if by is not None:
            node.add(by, self.expect(self.const_expression(), "constExpression"))
        return node.add(
            self.expect_reserved_word("DO"),
            self.expect(self.statement_sequence(), "statementSequence"),
            self.expect_reserved_word("END"),
        )

    # ------------------------------------------------------------------
    # Expressions

    def const_expression(self) -> Optional[ParseNode]:
        """ConstExpression = expression ."""
        return self.expression()

    @production("expression")
    def expression(self) -> Optional[ParseNode]:
        """expression = SimpleExpression [relation SimpleExpression] ."""
        simple = self.simple_expression()
        if simple is None:
            return None
        node = ParseNode("expression", [simple])
        relation = self.relation()
        if relation is not None:
            node.add(relation, self.expect(self.simple_expression(), "simpleExpression"))
        return node

    @production("relation")
    def relation(self) -> Optional[ParseNode]:
        """relation = "=" | "#" | "<" | "<=" | ">" | ">=" | IN | IS ."""
        operator = self._match_any(RELATION_OPERATORS, RELATION_WORDS)
        return ParseNode("relation", [operator]) if operator is not None else None

    @production("simpleExpression")
    def simple_expression(self) -> Optional[ParseNode]:
        """SimpleExpression = ["+" | "-"] term {AddOperator term} ."""
        sign = self._match_any(ADD_OPERATORS)
        term = self.term()
        if term is None:
            if sign is None:
                return None
            raise self._expected("term")
        node = ParseNode("simpleExpression").add(sign, term)
        while True:
            operator = self.add_operator()
            if operator is None:
                break
            node.add(operator, self.expect(self.term(), "term"))
        return node

    @production("addOperator")
    def add_operator(self) -> Optional[ParseNode]:
        """AddOperator = "+" | "-" | OR ."""
        operator = self._match_any(ADD_OPERATORS, ADD_WORDS)
        return ParseNode("addOperator", [operator]) if operator is not None else None

    @production("term")
    def term(self) -> Optional[ParseNode]:
        """term = factor {MulOperator factor} ."""
        factor = self.factor()
        if factor is None:
            return None
        node = ParseNode("term", [factor])
        while True:
            operator = self.mul_operator()
            if operator is None:
                break
            node.add(operator, self.expect(self.factor(), "factor"))
        return node

    @production("mulOperator")
    def mul_operator(self) -> Optional[ParseNode]:
        """MulOperator = "*" | "/" | DIV | MOD | "&" ."""
        operator = self._match_any(MUL_OPERATORS, MUL_WORDS)
        return ParseNode("mulOperator", [operator]) if operator is not None else None

    @production("factor")
    def factor(self) -> Optional[ParseNode]:
        """factor = number | string | NIL | TRUE | FALSE | set | designator [ActualParameters] | "(" expression ")" | "~" factor ."""
        node = ParseNode("factor")

        literal = (self.match_kind(TokenKind.INTEGER, TokenKind.REAL, TokenKind.STRING)
                   or self._match_any(words=("NIL", "TRUE", "FALSE"))
                   or self.set_())
        if literal is not None:
            return node.add(literal)

        designator = self.designator()
        if designator is not None:
            return node.add(designator, self.actual_parameters())

        left_paren = self.match_operator("(")
        if left_paren is not None:
            return node.add(
                left_paren,
                self.expect(self.expression(), "expression"),
                self.expect_operator(")"),
            )

        tilde = self.match_operator("~")
        if tilde is not None:
            return node.add(tilde, self.expect(self.factor(), "factor"))

        return None

    @production("set")
    def set_(self) -> Optional[ParseNode]:
        """set = "{" [element {"," element}] "}" ."""
        left_brace = self.match_operator("{")
        if left_brace is None:
            return None
        node = ParseNode("set", [left_brace])
        element = self.element()
        if element is not None:
            node.add(element)
            while True:
                comma = self.match_operator(",")
                if comma is None:
                    break
                node.add(comma, self.expect(self.element(), "element"))
        return node.add(self.expect_operator("}"))

    @production("element")
    def element(self) -> Optional[ParseNode]:
        """element = expression [".." expression] ."""
        expression = self.expression()
        if expression is None:
            return None
        node = ParseNode("element", [expression])
        range_ = self.match_operator("..")
        if range_ is not None:
            node.add(range_, self.expect(self.expression(), "expression"))
        return node

    @production("designator")
    def designator(self) -> Optional[ParseNode]:
        """designator = qualident {selector} ."""
        qualident = self.qualident()
        if qualident is None:
            return None
        node = ParseNode("designator", [qualident])
        while True:
            selector = self.selector()
            if selector is None:
                break
            node.add(selector)
        return node

    @production("selector")
    def selector(self) -> Optional[ParseNode]:
        """selector = "." ident | "[" ExpList "]" | "^" | "(" qualident ")" ."""
        field_access = self._match_all(partial(self.match_operator, "."), self.match_ident)
        if field_access is not None:
            return ParseNode("selector", field_access)

        left_bracket = self.match_operator("[")
        if left_bracket is not None:
            return ParseNode("selector", [left_bracket]).add(
                self.expect(self.exp_list(), "expList"),
                self.expect_operator("]"),
            )

        caret = self.match_operator("^")
        if caret is not None:
            return ParseNode("selector", [caret])

        type_guard = self._match_all(
            partial(self.match_operator, "("),
            self.qualident,
            partial(self.match_operator, ")"),
        )
        if type_guard is not None:
            return ParseNode("selector", type_guard)

        return None

    @production("qualident")
    def qualident(self) -> Optional[ParseNode]:
        """qualident = [ident "."] ident ."""
        ident = self.match_ident()
        if ident is None:
            return None
        node = ParseNode("qualident", [ident])
        qualified = self._match_all(partial(self.match_operator, "."), self.match_ident)
        if qualified is not None:
            node.add(*qualified)
        return node

    @production("expList")
    def exp_list(self) -> Optional[ParseNode]:
        """ExpList = expression {"," expression} ."""
        expression = self.expression()
        if expression is None:
            return None
        node = ParseNode("expList", [expression])
        while True:
            comma = self.match_operator(",")
            if comma is None:
                break
            node.add(comma, self.expect(self.expression(), "expression"))
        return node

    @production("actualParameters")
    def actual_parameters(self) -> Optional[ParseNode]:
        """ActualParameters = "(" [ExpList] ")" ."""
        left_paren = self.match_operator("(")
        if left_paren is None:
            return None
        return ParseNode("actualParameters", [left_paren]).add(
            self.exp_list(),
            self.expect_operator(")"),
        )


# ============================================================================
# Module-level entry points
# ============================================================================

def parse(tokens: List[Token], tracer: Optional[Tracer] = None,
          max_depth: int = DEFAULT_MAX_DEPTH) -> ParseNode:
    """Parse a token list as one module, raising ParseError on failure"""
    return OberonParser(tokens, tracer, max_depth).parse()


def parse_source(source: Union[bytes, str], tracer: Optional[Tracer] = None,
                 max_depth: int = DEFAULT_MAX_DEPTH) -> ParseNode:
    """Scan and parse one module, raising LexError or ParseError"""
    return parse(tokenize(source, tracer), tracer, max_depth)


class OberonFrontEnd:
    """Scanner and parser bundled behind string/file entry points"""

    def __init__(self, debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH,
                 tracer: Optional[Tracer] = None):
        self.debug = debug
        self.max_depth = max_depth
        self.tracer = tracer if tracer is not None else (make_print_tracer() if debug else None)

    def tokenize(self, text: Union[bytes, str]) -> List[Token]:
        """Tokenize Oberon source code"""
        return tokenize(text, self.tracer)

    def parse_string(self, text: Union[bytes, str]) -> ParseNode:
        """Parse Oberon source code from a string"""
        return parse(self.tokenize(text), self.tracer, self.max_depth)

    def parse_file(self, filepath: str) -> ParseNode:
        """Parse an Oberon source file"""
        return self.parse_string(read_source(filepath))

    def parse_expression(self, text: Union[bytes, str]) -> ParseNode:
        """Parse a single Oberon expression"""
        return self.parse_rule("expression", text)

    def parse_rule(self, name: str, text: Union[bytes, str]) -> ParseNode:
        """Parse text as one production covering the whole input"""
        parser = OberonParser(self.tokenize(text), self.tracer, self.max_depth)
        return parser.parse_rule(name)


# Factory functions for creating parsers
def create_parser(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> OberonFrontEnd:
    """Create an Oberon front-end"""
    return OberonFrontEnd(debug=debug, max_depth=max_depth)


def create_debug_parser() -> OberonFrontEnd:
    """Create an Oberon front-end with tracing enabled"""
    return OberonFrontEnd(debug=True)


# Utility functions for working with parse trees
def find_nodes_by_label(tree: ParseNode, label: str) -> List[ParseNode]:
    """Find all nodes with a given label, in document order"""
    result = []

    def search(node: ParseNode):
        if node.label == label:
            result.append(node)
        for child in node.children:
            search(child)

    search(tree)
    return result


def terminal_leaves(tree: ParseNode) -> List[ParseNode]:
    """Leaves built from tokens, left to right"""
    if tree.is_terminal:
        return [tree]
    leaves = []
    for child in tree.children:
        leaves.extend(terminal_leaves(child))
    return leaves


def pretty_print_tree(tree: ParseNode, indent: int = 0) -> str:
    """Pretty print a parse tree for debugging"""
    result = "  " * indent + tree.label + "\n"
    for child in tree.children:
        result += pretty_print_tree(child, indent + 1)
    return result


def tree_to_dict(tree: ParseNode) -> Dict[str, Any]:
    """Convert a parse tree to a dictionary representation"""
    token = tree.token
    return {
        "label": tree.label,
        "token": {
            "text": token.text,
            "kind": token.kind.value,
            "line": token.line,
            "column": token.column,
        } if token else None,
        "children": [tree_to_dict(child) for child in tree.children],
    }


if __name__ == "__main__":
    # Example usage
    front_end = create_parser()

    try:
        print(pretty_print_tree(front_end.parse_expression("1 + 2 * 3")))
    except (LexError, ParseError) as e:
        print(f"Error: {e}")

    try:
        test_module = """
        MODULE Hello;
          IMPORT Out;
          VAR i: INTEGER;
        BEGIN
          FOR i := 1 TO 10 DO Out.Int(i, 0) END
        END Hello.
        """
        print(pretty_print_tree(front_end.parse_string(test_module)))
    except (LexError, ParseError) as e:
        print(f"Error: {e}")
