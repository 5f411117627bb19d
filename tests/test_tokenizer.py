import pytest

from lamb.lib.parser import IntLit, Keyword, Name, ParseError, Symbol, Token, UnexpectedEOFError, tokenize


class TestTokenizer:
    @pytest.mark.parametrize(
        "program, tokens",
        [
            ("1", [IntLit(1)]),
            ("123", [IntLit(123)]),
            ("abc_123", [Name("abc_123")]),
            ("x'", [Name("x'")]),
            ("True False", [Keyword("True"), Keyword("False")]),
            ("lettuce", [Name("lettuce")]),
            ("fn x -> x", [Keyword("fn"), Name("x"), Symbol("->"), Name("x")]),
            ("(a,b)", [Symbol("("), Name("a"), Symbol(","), Name("b"), Symbol(")")]),
            ("f x y", [Name("f"), Name("x"), Name("y")]),
            (
                "let x = 1 in x",
                [Keyword("let"), Name("x"), Symbol("="), IntLit(1), Keyword("in"), Name("x")],
            ),
        ],
    )
    def test_tokenize(self, program: str, tokens: list[Token]) -> None:
        assert tokenize(program) == tokens

    def test_tokenize_empty(self) -> None:
        assert tokenize("   \n\t ") == []

    def test_line_comment(self) -> None:
        assert tokenize("1 -- one\n-- nothing here\n2") == [IntLit(1), IntLit(2)]

    def test_line_comment_at_end_of_input(self) -> None:
        assert tokenize("x -- trailing") == [Name("x")]

    def test_block_comment(self) -> None:
        assert tokenize("1 {- a\nmultiline -} 2") == [IntLit(1), IntLit(2)]

    def test_block_comment_between_tokens_without_spaces(self) -> None:
        assert tokenize("f{- arg -}x") == [Name("f"), Name("x")]

    def test_unterminated_block_comment(self) -> None:
        with pytest.raises(UnexpectedEOFError, match="unterminated block comment"):
            tokenize("1 {- never closed")

    @pytest.mark.parametrize("program", ["1 + 2", "x; y", "-1", "\"str\""])
    def test_unexpected_character(self, program: str) -> None:
        with pytest.raises(ParseError, match="unexpected character"):
            tokenize(program)

    def test_line_numbers(self) -> None:
        tokens = tokenize("let x =\n  1\nin {- \n -} x")
        assert [token.lineno for token in tokens] == [1, 1, 1, 2, 3, 4]
