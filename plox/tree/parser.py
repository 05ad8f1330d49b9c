"""Recursive-descent parser for the plox language: turns a token list into a tree (see ast.py).

Grammar, lowest precedence first. All binary operators associate to the left.

```
<program>     ::= <declaration>* EOF
<declaration> ::= <class_decl> | <fun_decl> | <var_decl> | <statement>
<class_decl>  ::= "class" IDENT ( "<" IDENT )? "{" ( <function> | <getter> )* "}"
<fun_decl>    ::= "fun" <function>
<function>    ::= IDENT "(" <params>? ")" <block>
<getter>      ::= IDENT <block>                          ; only inside a class body
<var_decl>    ::= "var" IDENT ( "=" <expression> )? ";"

<statement>   ::= <expr_stmt> | <print_stmt> | <block> | <if_stmt> | <while_stmt> | <for_stmt>
                | <break_stmt> | <return_stmt>
<for_stmt>    ::= "for" "(" ( <var_decl> | <expr_stmt> | ";" ) <expression>? ";" <expression>? ")" <statement>
                                                         ; desugared to { init; while (cond) { body; incr; } }
<break_stmt>  ::= "break" ";"
<return_stmt> ::= "return" <expression>? ";"

<expression>  ::= <assignment>
<assignment>  ::= ( <call> "." )? IDENT "=" <assignment> | <logic_or>
<logic_or>    ::= <logic_and> ( "or" <logic_and> )*
<logic_and>   ::= <equality> ( "and" <equality> )*
<equality>    ::= <comparison> ( ( "!=" | "==" ) <comparison> )*
<comparison>  ::= <term> ( ( ">" | ">=" | "<" | "<=" ) <term> )*
<term>        ::= <factor> ( ( "-" | "+" ) <factor> )*
<factor>      ::= <unary> ( ( "/" | "*" ) <unary> )*
<unary>       ::= ( "!" | "-" ) <unary> | <fun_expr>
<fun_expr>    ::= "fun" "(" <params>? ")" <block> | <call>
<call>        ::= <primary> ( "(" <args>? ")" | "." IDENT )*
<primary>     ::= NUMBER | STRING | "true" | "false" | "nil" | "this" | "super" "." IDENT
                | "(" <expression> ")" | IDENT
```

On a syntax error the parser reports it, unwinds to the enclosing declaration with a ParseError and skips tokens until
something that looks like a statement boundary. Parsing then resumes, so one pass can report several errors. Errors
that leave the tree well-formed (bad assignment target, too many arguments, misplaced break/return/this/super) are
reported without unwinding at all.
"""

from enum import Enum, auto

from plox.lang.error import ParseError
from plox.lang.tokens import Token, TokenType
from plox.tree import ast


class FunctionType(Enum):
    NONE = auto()
    FUNCTION = auto()
    METHOD = auto()


class ClassType(Enum):
    NONE = auto()
    CLASS = auto()
    SUBCLASS = auto()


class Parser:
    """Single-use parser over one token list. error_handler receives every syntax error."""
    MAX_ARGS = 255
    SYNC_STARTERS = {
        TokenType.CLASS, TokenType.FUN, TokenType.VAR, TokenType.FOR, TokenType.IF, TokenType.WHILE,
        TokenType.PRINT, TokenType.RETURN,
    }
    STATEMENT_KEYWORDS = {
        TokenType.PRINT, TokenType.LEFT_BRACE, TokenType.IF, TokenType.WHILE, TokenType.FOR, TokenType.BREAK,
        TokenType.RETURN,
    }

    def __init__(self, tokens, error_handler):
        self.tokens = tokens
        self.error_handler = error_handler
        self.current = 0

        # static context, used to reject misplaced break/return/this/super
        self.loop_depth = 0
        self.function_type = FunctionType.NONE
        self.class_type = ClassType.NONE

        self._allow_expression = False
        self._found_expression = False

    def parse_program(self):
        """Parses the whole token list as a program. Returns a list of statements; statements that had syntax errors
        are left out, so check error_handler.had_syntax_error before running the result.
        """
        statements = []
        while not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)
        return statements

    def parse_interactive(self):
        """Like parse_program, but if the whole input is a single expression with no trailing ';', returns that
        expression instead of a list of statements. The shell prints the value of the former and only runs the latter.
        """
        self._allow_expression = True
        statements = []
        while not self.is_at_end():
            stmt = self.declaration()
            if self._found_expression and isinstance(stmt, ast.Expression):
                return stmt.expression
            if stmt is not None:
                statements.append(stmt)
            self._allow_expression = False

        return statements

    # ============================================================
    # DECLARATIONS
    # ============================================================

    def declaration(self):
        # only a bare expression statement may go without its trailing semicolon
        allow_expression, self._allow_expression = self._allow_expression, False
        try:
            if self.match(TokenType.CLASS):
                return self.class_declaration()
            if self.check(TokenType.FUN) and self.check_next(TokenType.IDENTIFIER):
                self.advance()
                return self.function(FunctionType.FUNCTION)
            if self.match(TokenType.VAR):
                return self.var_declaration()
            if self.peek().type not in Parser.STATEMENT_KEYWORDS:
                self._allow_expression = allow_expression
            return self.statement()
        except ParseError:
            self.synchronize()
            return None

    def class_declaration(self):
        name = self.consume(TokenType.IDENTIFIER, "Expect class name.")

        superclass = None
        if self.match(TokenType.LESS):
            self.consume(TokenType.IDENTIFIER, "Expect superclass name.")
            superclass = ast.Variable(self.previous())
            if superclass.name.lexeme == name.lexeme:
                self.error(superclass.name, "A class can't inherit from itself.")

        self.consume(TokenType.LEFT_BRACE, "Expect '{' before class body.")

        enclosing_class = self.class_type
        self.class_type = ClassType.SUBCLASS if superclass is not None else ClassType.CLASS

        methods = []
        getters = []
        try:
            while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
                if self.check_next(TokenType.LEFT_BRACE):
                    if self.peek().lexeme == "init":
                        self.error(self.peek(), "An initializer can't be a getter.")
                    getters.append(self.function(FunctionType.METHOD, getter=True))
                else:
                    methods.append(self.function(FunctionType.METHOD))
        finally:
            self.class_type = enclosing_class

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after class body.")
        return ast.ClassDecl(name, superclass, tuple(methods), tuple(getters))

    def function(self, function_type, getter=False):
        """Parses the rest of a named function, method or getter: everything after "fun"."""
        kind = "method" if function_type is FunctionType.METHOD else "function"
        name = self.consume(TokenType.IDENTIFIER, f"Expect {kind} name.")

        params = ()
        if not getter:
            self.consume(TokenType.LEFT_PAREN, f"Expect '(' after {kind} name.")
            params = self.parameters()

        self.consume(TokenType.LEFT_BRACE, f"Expect '{{' before {kind} body.")
        body = self.function_body(function_type)
        return ast.FunctionDecl(name, params, body)

    def parameters(self):
        """Parses a parameter list up to and including the closing ')'."""
        params = []
        if not self.check(TokenType.RIGHT_PAREN):
            while True:
                if len(params) >= Parser.MAX_ARGS:
                    self.error(self.peek(), f"Can't have more than {Parser.MAX_ARGS} parameters.")
                params.append(self.consume(TokenType.IDENTIFIER, "Expect parameter name."))
                if not self.match(TokenType.COMMA):
                    break

        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after parameters.")
        return tuple(params)

    def function_body(self, function_type):
        """Parses a block as a function body. Loops around the function do not count inside it."""
        enclosing_function, enclosing_loops = self.function_type, self.loop_depth
        self.function_type, self.loop_depth = function_type, 0
        try:
            return tuple(self.block())
        finally:
            self.function_type, self.loop_depth = enclosing_function, enclosing_loops

    def var_declaration(self):
        name = self.consume(TokenType.IDENTIFIER, "Expect variable name.")

        initializer = None
        if self.match(TokenType.EQUAL):
            initializer = self.expression()

        self.consume(TokenType.SEMICOLON, "Expect ';' after variable declaration.")
        return ast.Var(name, initializer)

    # ============================================================
    # STATEMENTS
    # ============================================================

    def statement(self):
        if self.match(TokenType.PRINT):
            return self.print_statement()
        if self.match(TokenType.LEFT_BRACE):
            return ast.Block(tuple(self.block()))
        if self.match(TokenType.IF):
            return self.if_statement()
        if self.match(TokenType.WHILE):
            return self.while_statement()
        if self.match(TokenType.FOR):
            return self.for_statement()
        if self.match(TokenType.BREAK):
            return self.break_statement()
        if self.match(TokenType.RETURN):
            return self.return_statement()
        return self.expression_statement()

    def print_statement(self):
        value = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after value.")
        return ast.Print(value)

    def expression_statement(self):
        allow_expression, self._allow_expression = self._allow_expression, False
        expr = self.expression()
        if allow_expression and self.is_at_end():
            self._found_expression = True
        else:
            self.consume(TokenType.SEMICOLON, "Expect ';' after expression.")
        return ast.Expression(expr)

    def block(self):
        """Parses declarations up to and including the closing '}'. The opening '{' must already be consumed."""
        statements = []
        while not self.check(TokenType.RIGHT_BRACE) and not self.is_at_end():
            stmt = self.declaration()
            if stmt is not None:
                statements.append(stmt)

        self.consume(TokenType.RIGHT_BRACE, "Expect '}' after block.")
        return statements

    def if_statement(self):
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'if'.")
        condition = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after if condition.")

        then_branch = self.statement()
        else_branch = self.statement() if self.match(TokenType.ELSE) else None
        return ast.If(condition, then_branch, else_branch)

    def while_statement(self):
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'while'.")
        condition = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after condition.")

        return ast.While(condition, self.loop_body())

    def for_statement(self):
        """Desugars a for loop into an equivalent block/while pair; there is no for node."""
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'for'.")

        if self.match(TokenType.SEMICOLON):
            initializer = None
        elif self.match(TokenType.VAR):
            initializer = self.var_declaration()
        else:
            initializer = self.expression_statement()

        condition = None
        if not self.check(TokenType.SEMICOLON):
            condition = self.expression()
        self.consume(TokenType.SEMICOLON, "Expect ';' after loop condition.")

        increment = None
        if not self.check(TokenType.RIGHT_PAREN):
            increment = self.expression()
        self.consume(TokenType.RIGHT_PAREN, "Expect ')' after for clauses.")

        body = self.loop_body()

        if increment is not None:
            body = ast.Block((body, ast.Expression(increment)))
        if condition is None:
            condition = ast.Literal(True)
        body = ast.While(condition, body)
        if initializer is not None:
            body = ast.Block((initializer, body))

        return body

    def loop_body(self):
        self.loop_depth += 1
        try:
            return self.statement()
        finally:
            self.loop_depth -= 1

    def break_statement(self):
        keyword = self.previous()
        if self.loop_depth == 0:
            self.error(keyword, "Can't use 'break' outside of a loop.")
        self.consume(TokenType.SEMICOLON, "Expect ';' after 'break'.")
        return ast.Break(keyword)

    def return_statement(self):
        keyword = self.previous()
        if self.function_type is FunctionType.NONE:
            self.error(keyword, "Can't return from top-level code.")

        value = None
        if not self.check(TokenType.SEMICOLON):
            value = self.expression()

        self.consume(TokenType.SEMICOLON, "Expect ';' after return value.")
        return ast.Return(keyword, value)

    # ============================================================
    # EXPRESSIONS
    # ============================================================

    def expression(self):
        return self.assignment()

    def assignment(self):
        """Parses the target as an ordinary expression, then rewrites it if it turns out to be assigned to."""
        expr = self.logic_or()

        if self.match(TokenType.EQUAL):
            equals = self.previous()
            value = self.assignment()

            if isinstance(expr, ast.Variable):
                return ast.Assign(expr.name, value)
            elif isinstance(expr, ast.Get):
                return ast.Set(expr.object, expr.name, value)

            # reported but not raised: the tree is still well-formed, no need to synchronize
            self.error(equals, "Invalid assignment target.")

        return expr

    def logic_or(self):
        return self._left_assoc(self.logic_and, ast.Logical, TokenType.OR)

    def logic_and(self):
        return self._left_assoc(self.equality, ast.Logical, TokenType.AND)

    def equality(self):
        return self._left_assoc(self.comparison, ast.Binary, TokenType.BANG_EQUAL, TokenType.EQUAL_EQUAL)

    def comparison(self):
        return self._left_assoc(
            self.term, ast.Binary,
            TokenType.GREATER, TokenType.GREATER_EQUAL, TokenType.LESS, TokenType.LESS_EQUAL
        )

    def term(self):
        return self._left_assoc(self.factor, ast.Binary, TokenType.MINUS, TokenType.PLUS)

    def factor(self):
        return self._left_assoc(self.unary, ast.Binary, TokenType.SLASH, TokenType.STAR)

    def _left_assoc(self, operand, node, *operators):
        """Parses `operand ( operator operand )*` into a left-leaning chain of node."""
        expr = operand()
        while self.match(*operators):
            operator = self.previous()
            right = operand()
            expr = node(expr, operator, right)
        return expr

    def unary(self):
        if self.match(TokenType.BANG, TokenType.MINUS):
            operator = self.previous()
            return ast.Unary(operator, self.unary())
        return self.function_expression()

    def function_expression(self):
        if not self.match(TokenType.FUN):
            return self.call()

        keyword = self.previous()
        self.consume(TokenType.LEFT_PAREN, "Expect '(' after 'fun'.")
        params = self.parameters()
        self.consume(TokenType.LEFT_BRACE, "Expect '{' before function body.")
        return ast.Function(keyword, params, self.function_body(FunctionType.FUNCTION))

    def call(self):
        expr = self.primary()

        while True:
            if self.match(TokenType.LEFT_PAREN):
                expr = self.finish_call(expr)
            elif self.match(TokenType.DOT):
                name = self.consume(TokenType.IDENTIFIER, "Expect property name after '.'.")
                expr = ast.Get(expr, name)
            else:
                break

        return expr

    def finish_call(self, callee):
        arguments = []
        if not self.check(TokenType.RIGHT_PAREN):
            while True:
                if len(arguments) >= Parser.MAX_ARGS:
                    self.error(self.peek(), f"Can't have more than {Parser.MAX_ARGS} arguments.")
                arguments.append(self.expression())
                if not self.match(TokenType.COMMA):
                    break

        paren = self.consume(TokenType.RIGHT_PAREN, "Expect ')' after arguments.")
        return ast.Call(callee, paren, tuple(arguments))

    def primary(self):
        if self.match(TokenType.FALSE):
            return ast.Literal(False)
        if self.match(TokenType.TRUE):
            return ast.Literal(True)
        if self.match(TokenType.NIL):
            return ast.Literal(None)

        if self.match(TokenType.NUMBER, TokenType.STRING):
            return ast.Literal(self.previous().literal)

        if self.match(TokenType.THIS):
            keyword = self.previous()
            if self.class_type is ClassType.NONE:
                self.error(keyword, "Can't use 'this' outside of a class.")
            return ast.This(keyword)

        if self.match(TokenType.SUPER):
            keyword = self.previous()
            if self.class_type is ClassType.NONE:
                self.error(keyword, "Can't use 'super' outside of a class.")
            elif self.class_type is ClassType.CLASS:
                self.error(keyword, "Can't use 'super' in a class with no superclass.")
            self.consume(TokenType.DOT, "Expect '.' after 'super'.")
            method = self.consume(TokenType.IDENTIFIER, "Expect superclass method name.")
            return ast.Super(keyword, method)

        if self.match(TokenType.IDENTIFIER):
            return ast.Variable(self.previous())

        if self.match(TokenType.LEFT_PAREN):
            expr = self.expression()
            self.consume(TokenType.RIGHT_PAREN, "Expect ')' after expression.")
            return ast.Grouping(expr)

        raise self.error(self.peek(), "Expect expression.")

    # ============================================================
    # TOKEN HELPERS
    # ============================================================

    def match(self, *types):
        """If the current token has any of types, consumes it and returns True."""
        for token_type in types:
            if self.check(token_type):
                self.advance()
                return True
        return False

    def consume(self, token_type, msg):
        if self.check(token_type):
            return self.advance()
        raise self.error(self.peek(), msg)

    def check(self, token_type):
        if self.is_at_end():
            return False
        return self.peek().type is token_type

    def check_next(self, token_type):
        if self.is_at_end() or self.tokens[self.current + 1].type is TokenType.EOF:
            return False
        return self.tokens[self.current + 1].type is token_type

    def advance(self):
        if not self.is_at_end():
            self.current += 1
        return self.previous()

    def is_at_end(self):
        return self.peek().type is TokenType.EOF

    def peek(self) -> Token:
        return self.tokens[self.current]

    def previous(self) -> Token:
        return self.tokens[self.current - 1]

    def error(self, token, msg):
        """Reports msg against token and returns (does not raise) the ParseError, so callers can choose to unwind."""
        return self.error_handler.syntax_error(token, msg)

    def synchronize(self):
        """Discards tokens until just after a ';' or just before a token that starts a statement."""
        self.advance()

        while not self.is_at_end():
            if self.previous().type is TokenType.SEMICOLON:
                return
            if self.peek().type in Parser.SYNC_STARTERS:
                return
            self.advance()
