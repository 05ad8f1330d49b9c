"""Scanner for the plox language: turns source text into a flat list of Tokens, terminated by an EOF token.

Scanning never stops at the first problem. Unexpected characters and unterminated strings are reported to the
ErrorHandler and skipped, so that the parser still gets a usable token list.
"""

from plox.lang.tokens import KEYWORDS, Token, TokenType


class Scanner:
    """Single-use scanner over one piece of source text."""
    SINGLE = {
        "(": TokenType.LEFT_PAREN,
        ")": TokenType.RIGHT_PAREN,
        "{": TokenType.LEFT_BRACE,
        "}": TokenType.RIGHT_BRACE,
        ",": TokenType.COMMA,
        ".": TokenType.DOT,
        "-": TokenType.MINUS,
        "+": TokenType.PLUS,
        ";": TokenType.SEMICOLON,
        "*": TokenType.STAR,
    }
    # char: (type if followed by "=", type otherwise)
    DOUBLE = {
        "!": (TokenType.BANG_EQUAL, TokenType.BANG),
        "=": (TokenType.EQUAL_EQUAL, TokenType.EQUAL),
        "<": (TokenType.LESS_EQUAL, TokenType.LESS),
        ">": (TokenType.GREATER_EQUAL, TokenType.GREATER),
    }

    def __init__(self, source, error_handler, line=1):
        self.source = source
        self.error_handler = error_handler

        self.tokens = []
        self.start = 0
        self.current = 0
        self.line = line

    def scan_tokens(self):
        """Scans the whole source. Returns the token list."""
        while not self.is_at_end():
            self.start = self.current
            self.scan_token()

        self.tokens.append(Token(TokenType.EOF, "", None, self.line))
        return self.tokens

    def scan_token(self):
        char = self.advance()

        if char in Scanner.SINGLE:
            self.add_token(Scanner.SINGLE[char])
        elif char in Scanner.DOUBLE:
            with_equal, alone = Scanner.DOUBLE[char]
            self.add_token(with_equal if self.match("=") else alone)
        elif char == "/":
            if self.match("/"):
                while self.peek() != "\n" and not self.is_at_end():
                    self.advance()  # comment
            else:
                self.add_token(TokenType.SLASH)
        elif char in " \r\t":
            pass
        elif char == "\n":
            self.line += 1
        elif char == "\"":
            self.string()
        elif Scanner.is_digit(char):
            self.number()
        elif char.isalpha() or char == "_":
            self.identifier()
        else:
            self.error_handler.syntax_error(self.line, f"Unexpected character '{char}'.")

    def string(self):
        while self.peek() != "\"" and not self.is_at_end():
            if self.peek() == "\n":
                self.line += 1
            self.advance()

        if self.is_at_end():
            self.error_handler.syntax_error(self.line, "Unterminated string.")
            return

        self.advance()  # closing "
        self.add_token(TokenType.STRING, self.source[self.start + 1:self.current - 1])

    def number(self):
        while Scanner.is_digit(self.peek()):
            self.advance()

        if self.peek() == "." and Scanner.is_digit(self.peek_next()):
            self.advance()
            while Scanner.is_digit(self.peek()):
                self.advance()

        self.add_token(TokenType.NUMBER, float(self.source[self.start:self.current]))

    def identifier(self):
        while self.peek().isalnum() or self.peek() == "_":
            self.advance()

        text = self.source[self.start:self.current]
        self.add_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    @staticmethod
    def is_digit(char):
        """ASCII digits only: str.isdigit also accepts superscripts and other scripts' digits."""
        return "0" <= char <= "9"

    def is_at_end(self):
        return self.current >= len(self.source)

    def advance(self):
        self.current += 1
        return self.source[self.current - 1]

    def match(self, expected):
        if self.is_at_end() or self.source[self.current] != expected:
            return False
        self.current += 1
        return True

    def peek(self):
        return "\0" if self.is_at_end() else self.source[self.current]

    def peek_next(self):
        return "\0" if self.current + 1 >= len(self.source) else self.source[self.current + 1]

    def add_token(self, token_type, literal=None):
        self.tokens.append(Token(token_type, self.source[self.start:self.current], literal, self.line))
