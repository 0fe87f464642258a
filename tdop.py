"""
simple calculator, top down operator precedence:
- pratt parser: nud/led/lbp instead of one method per grammar level
- evaluate while parsing, no AST
- power operator, right associative
- prefix plus negates its operand

grammar:
expr                : PLUS expr
                    | INTEGER_CONST
                    | LPAREN expr RPAREN
                    | expr (PLUS | MINUS | MUL | DIV | POW) expr

binding power:
PLUS, MINUS         : 10    left
MUL, DIV            : 20    left
POW                 : 30    right
prefix PLUS         : 100
"""

from collections import namedtuple
from enum import Enum
import argparse
import sys

from pyecharts import options as opts
from pyecharts.charts import Tree

LOCAL_ECHARTS = True
_SHOULD_LOG_TRACE = False

###############################################################################
#                                                                             #
#   ERROR MESSAGE                                                             #
#                                                                             #
###############################################################################

Position = namedtuple('Position', ['line', 'col'])


class ErrorCode(Enum):
    UNRECOGNIZED_CHAR   = 'Unrecognized char'
    UNEXPECTED_TOKEN    = 'Unexpected token'
    UNEXPECTED_INFIX    = 'Unexpected infix token'
    MISMATCHED_PAREN    = 'Mismatched parenthesis'
    TRAILING_TOKEN      = 'Trailing token'
    DIVISION_BY_ZERO    = 'Division by zero'
    INVALID_EXPONENT    = 'Invalid exponent'
    OVERFLOW            = 'Integer overflow'
    TOO_DEEP            = 'Expression nested too deep'


class ErrorInfo:
    # lexer error

    @staticmethod
    def unrecognized_char(item):
        return f'unrecognized char `{item}`'

    @staticmethod
    def literal_overflow(digits):
        return f'integer literal of {digits} digits out of range {INT_MIN}..{INT_MAX}'

    # parser error

    @staticmethod
    def unexpected_token(item, want):
        return f'token `{item}` is not expected, want `{want}`'

    @staticmethod
    def unexpected_infix(item):
        return f'token `{item}` can not be used as an infix operator'

    @staticmethod
    def stream_not_end():
        return 'token stream ends without EOF'

    @staticmethod
    def too_deep():
        return 'expression nested too deep'

    # intepreter error
    # operands are in INT_MIN..INT_MAX, safe to format

    @staticmethod
    def division_by_zero(left):
        return f'division by zero: `{left} / 0`'

    @staticmethod
    def invalid_exponent(base, exponent):
        return f'invalid exponent in `{base} ^ {exponent}`, want 0..{MAX_EXPONENT}'

    @staticmethod
    def overflow(op):
        return f'result of `{op}` out of range {INT_MIN}..{INT_MAX}'


class Error(Exception):
    def __init__(self, error_code, position, message):
        super().__init__(message)
        self.error_code = error_code
        self.position = position
        self.message = message

    def __str__(self):
        if self.position is None:
            return f'{self.__class__.__name__}: {self.message}'
        return f'{self.__class__.__name__}: <{self.position.line}:{self.position.col}>: {self.message}'

    __repr__ = __str__


class LexerError(Error):
    pass


class ParserError(Error):
    pass


class InterpreterError(Error):
    pass


###############################################################################
#                                                                             #
#  LEXER                                                                      #
#                                                                             #
###############################################################################

# Token types
class TokenType(Enum):
    # misc
    INTEGER_CONST   = 'INTEGER_CONST'
    EOF             = 'EOF'
    # opt
    PLUS            = '+'
    MINUS           = '-'
    MUL             = '*'
    DIV             = '/'
    POW             = '^'
    LPAREN          = '('
    RPAREN          = ')'


DIGITS = '0123456789'


class Token:
    def __init__(self, token_type, value, position):
        """Token

        Args:
          token_type: TokenType
          value: int for INTEGER_CONST, the lexeme for operators, None for EOF
          position: Position
        """
        self.type = token_type
        self.value = value
        self.position = position

    def __str__(self):
        return f'Token({self.type}, {repr(self.value)}, pos={self.position.line}:{self.position.col})'

    def __repr__(self):
        return self.__str__()


class Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.current_char = self.text[self.pos] if self.text else None
        # for error information
        self.line = 1
        self.col = 0

    def position(self):
        return Position(self.line, self.col)

    def error(self, message):
        raise LexerError(ErrorCode.UNRECOGNIZED_CHAR, self.position(), message)

    def advance(self):
        """get next char, and increse the pos pointer

        advance the 'pos' pointer and set the 'current_char' variable.
        """
        if self.current_char == '\n':
            self.line += 1
            self.col = -1

        self.pos += 1
        self.col += 1
        if self.pos > len(self.text) - 1:
            self.current_char = None  # end of input
        else:
            self.current_char = self.text[self.pos]

    def skip_whitespace(self):
        while self.current_char is not None and self.current_char.isspace():
            self.advance()

    def integer(self):
        """parse an integer from the input

        only ascii digits, `str.isdigit` also accepts things like '²'
        """
        position = self.position()

        result = ''
        while self.current_char is not None and self.current_char in DIGITS:
            result += self.current_char
            self.advance()

        # length first, `int()` refuses very long digit strings
        significant = result.lstrip('0') or '0'
        if len(significant) > len(str(INT_MAX)) or int(significant) > INT_MAX:
            raise LexerError(ErrorCode.OVERFLOW, position, ErrorInfo.literal_overflow(len(result)))

        return Token(TokenType.INTEGER_CONST, int(significant), position)

    def get_next_token(self):
        """lexical analyzer, lexer, scanner, tokenizer

        breaking a sentence apart into tokens. One token one time.
        """
        while self.current_char is not None:
            # space
            if self.current_char.isspace():
                self.skip_whitespace()
                continue

            # digit -> integer
            if self.current_char in DIGITS:
                return self.integer()

            # single-char token
            try:
                token_type = TokenType(self.current_char)
            except ValueError:
                # unrecognized char
                self.error(ErrorInfo.unrecognized_char(self.current_char))
            else:
                token = Token(token_type, self.current_char, self.position())
                self.advance()
                return token

        return Token(TokenType.EOF, None, self.position())

    def tokenize(self):
        """the whole token stream, EOF included
        """
        tokens = [self.get_next_token()]
        while tokens[-1].type != TokenType.EOF:
            tokens.append(self.get_next_token())
        return tokens


###############################################################################
#                                                                             #
#  PARSER                                                                     #
#                                                                             #
###############################################################################

# left binding power of every infix operator, tokens not listed bind with 0
BINDING_POWERS = {
    TokenType.PLUS:  10,
    TokenType.MINUS: 10,
    TokenType.MUL:   20,
    TokenType.DIV:   20,
    TokenType.POW:   30,
}

RIGHT_ASSOCIATIVE = (TokenType.POW,)

PREFIX_BINDING_POWER = 100

MAX_EXPONENT = 2 ** 32 - 1

# values are 32-bit signed, anything outside is an overflow
INT_MIN = -2 ** 31
INT_MAX = 2 ** 31 - 1


class Parser:
    def __init__(self, tokens):
        """Pratt parser, evaluates while parsing

        Args:
          tokens: iterable of Token, must end with EOF
        """
        self.tokens = iter(tokens)
        self.current_token = None
        self.depth = 0

    def log(self, msg):
        if _SHOULD_LOG_TRACE:
            print('  ' * self.depth + msg)

    def error(self, error_code, token, message):
        raise ParserError(error_code, token.position if token else None, message)

    def next(self):
        try:
            self.current_token = next(self.tokens)
        except StopIteration:
            self.error(ErrorCode.UNEXPECTED_TOKEN, None, ErrorInfo.stream_not_end())

    def eat(self, token_type, error_code=ErrorCode.UNEXPECTED_TOKEN):
        """verify the token type
        """
        if self.current_token.type == token_type:
            self.next()
        else:
            self.error(error_code, self.current_token, ErrorInfo.unexpected_token(self.current_token, token_type))

    def lbp(self):
        """left binding power of the look-ahead
        """
        return BINDING_POWERS.get(self.current_token.type, 0)

    def expression(self, rbp=0):
        """parse and evaluate while the look-ahead binds tighter than rbp
        """
        self.log(f'expression rbp={rbp} at {self.current_token}')
        self.depth += 1
        left = self.nud()
        while rbp < self.lbp():
            left = self.led(left)
        self.depth -= 1
        return left

    def nud(self):
        """null denotation: token in prefix position
        """
        token = self.current_token
        self.log(f'nud {token}')
        if token.type == TokenType.INTEGER_CONST:
            self.next()
            return self.literal(token)
        elif token.type == TokenType.PLUS:
            self.next()
            return self.negate(token, self.expression(PREFIX_BINDING_POWER))
        elif token.type == TokenType.LPAREN:
            self.next()
            result = self.expression(0)
            self.eat(TokenType.RPAREN, ErrorCode.MISMATCHED_PAREN)
            return result
        else:
            self.error(ErrorCode.UNEXPECTED_TOKEN, token, ErrorInfo.unexpected_token(token, 'INTEGER_CONST, + or ('))

    def led(self, left):
        """left denotation: token in infix position, folds `left` in
        """
        op = self.current_token
        self.log(f'led {op}')
        if op.type not in BINDING_POWERS:
            self.error(ErrorCode.UNEXPECTED_INFIX, op, ErrorInfo.unexpected_infix(op))

        rbp = BINDING_POWERS[op.type]
        if op.type in RIGHT_ASSOCIATIVE:
            rbp -= 1
        self.next()
        return self.binary(op, left, self.expression(rbp))

    # evaluation hooks

    def literal(self, token):
        return token.value

    def negate(self, token, operand):
        return self.check_range(token, -operand)

    def binary(self, op, left, right):
        if op.type == TokenType.PLUS:
            result = left + right
        elif op.type == TokenType.MINUS:
            result = left - right
        elif op.type == TokenType.MUL:
            result = left * right
        elif op.type == TokenType.DIV:
            if right == 0:
                raise InterpreterError(ErrorCode.DIVISION_BY_ZERO, op.position, ErrorInfo.division_by_zero(left))
            # truncate toward zero, `//` floors
            quotient = abs(left) // abs(right)
            result = quotient if (left < 0) == (right < 0) else -quotient
        elif op.type == TokenType.POW:
            if not 0 <= right <= MAX_EXPONENT:
                raise InterpreterError(ErrorCode.INVALID_EXPONENT, op.position, ErrorInfo.invalid_exponent(left, right))
            # |left| >= 2 overflows long before 2 ** 32
            if abs(left) > 1 and right > 32:
                raise InterpreterError(ErrorCode.OVERFLOW, op.position, ErrorInfo.overflow(op.value))
            result = left ** right
        else:
            self.error(ErrorCode.UNEXPECTED_INFIX, op, ErrorInfo.unexpected_infix(op))
        return self.check_range(op, result)

    def check_range(self, op, result):
        if not INT_MIN <= result <= INT_MAX:
            raise InterpreterError(ErrorCode.OVERFLOW, op.position, ErrorInfo.overflow(op.value))
        return result

    def parse(self):
        self.next()
        try:
            result = self.expression(0)
        except RecursionError:
            self.error(ErrorCode.TOO_DEEP, self.current_token, ErrorInfo.too_deep())
        if self.current_token.type != TokenType.EOF:
            self.error(ErrorCode.TRAILING_TOKEN, self.current_token,
                       ErrorInfo.unexpected_token(self.current_token, TokenType.EOF))

        return result


###############################################################################
#                                                                             #
#  DISPLAYER                                                                  #
#                                                                             #
###############################################################################

class Displayer(Parser):
    """builds the evaluation tree for echarts, values computed by Parser

    every node: {'name': label, 'value': int, 'children': [...]}
    """

    def literal(self, token):
        data = {
            'name': f'{token.value}',
            'value': super().literal(token),
        }
        return data

    def negate(self, token, operand):
        data = {
            'name': f'{token.value}',
            'value': super().negate(token, operand['value']),
            'children': [operand],
        }
        return data

    def binary(self, op, left, right):
        data = {
            'name': f'{op.value}',
            'value': super().binary(op, left['value'], right['value']),
            'children': [left, right],
        }
        return data

    def display(self, path='Tree.html', data=None):
        if data is None:
            data = self.parse()
        (
            Tree()
            .add(
                series_name="",         # name
                data=[data],            # data
                initial_tree_depth=-1,  # all expand
                orient="TB",            # top-to-bottom
                label_opts=opts.LabelOpts(
                    position="top",
                    vertical_align="middle",
                ),
            )
            .set_global_opts(title_opts=opts.TitleOpts(title=f"Tree = {data['value']}"))
            .render(path)
        )
        # modify js reference to local
        if LOCAL_ECHARTS:
            with open(path, 'r', encoding='utf-8') as fin:
                content = fin.readlines()
            for i, line in enumerate(content):
                if 'echarts.min.js' in line:
                    content[i] = '    <script type="text/javascript" src="echarts.min.js"></script>\n'
            with open(path, 'w', encoding='utf-8') as fout:
                fout.writelines(content)
        return path


###############################################################################
#                                                                             #
#   MAIN                                                                      #
#                                                                             #
###############################################################################

def evaluate(text: str) -> int:
    lexer = Lexer(text)
    parser = Parser(lexer.tokenize())
    return parser.parse()


def repl():
    while True:
        try:
            text = input('calc> ')
        except (EOFError, KeyboardInterrupt):
            break
        if not text.strip():
            continue

        try:
            print(evaluate(text))
        except (LexerError, ParserError, InterpreterError) as e:
            print(e)


def main(argv=None):
    global _SHOULD_LOG_TRACE

    parser = argparse.ArgumentParser(description='TDOP - Top Down Operator Precedence calculator')
    parser.add_argument('expression', nargs='?', help='expression to evaluate, omit for the interactive prompt')
    parser.add_argument('--trace', action='store_true', help='Print nud/led trace')
    parser.add_argument('--tree', action='store_true',
                        help='Render the evaluation tree to html, the page loads echarts.min.js '
                             'from its own directory (download it from https://echarts.apache.org)')
    parser.add_argument('--output', default='Tree.html', help='html file for --tree (default: Tree.html)')
    args = parser.parse_args(argv)

    _SHOULD_LOG_TRACE = args.trace

    if args.expression is None:
        repl()
        return 0

    try:
        tokens = Lexer(args.expression).tokenize()
        if args.tree:
            displayer = Displayer(tokens)
            data = displayer.parse()
            displayer.display(args.output, data)
            result = data['value']
        else:
            result = Parser(tokens).parse()
    except (LexerError, ParserError, InterpreterError) as e:
        print(e)
        return 1

    print(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
