"""
Tests for loading Lev ASTs from their JSON form.
"""

import json

import pytest

from ast_nodes import (
    AstFormatError, Literal, Var, Infix, Call, Scope, While, Operator,
    TermSemicolon, Let, LetMut, Mutate, Block,
    expr_from_dict, stmt_from_dict, block_from_dict, node_from_dict, program_from_json
)


def lit(value):
    return {"kind": "Literal", "value": value}


def var(name):
    return {"kind": "Var", "name": name}


COUNTDOWN = {
    "kind": "Block",
    "stmts": [
        {"kind": "LetMut", "name": "x", "rhs": lit(3)},
        {"kind": "TermSemicolon", "expr": {
            "kind": "While",
            "cond": var("x"),
            "block": {
                "stmts": [{"kind": "Mutate", "name": "x",
                           "rhs": {"kind": "Infix", "op": "-", "left": var("x"), "right": lit(1)}}],
                "end": lit(0),
            },
        }},
    ],
    "end": var("x"),
}


class TestLoading:
    """Tests for well-formed input"""

    def test_block_program(self):
        """A full program becomes the equivalent node tree"""
        program = program_from_json(json.dumps(COUNTDOWN))
        assert program == Block(
            [LetMut("x", Literal(3)),
             TermSemicolon(While(Var("x"), Block(
                 [Mutate("x", Infix(Var("x"), Operator.SUB, Literal(1)))], Literal(0))))],
            Var("x"),
        )

    def test_expression_program(self):
        """A bare expression is a valid program"""
        program = program_from_json(json.dumps({"kind": "Call", "name": "f", "args": [lit(1)]}))
        assert program == Call("f", [Literal(1)])

    def test_call_args_default_to_empty(self):
        assert expr_from_dict({"kind": "Call", "name": "f"}) == Call("f", [])

    def test_scope_and_let(self):
        scope = expr_from_dict({"kind": "Scope", "block": {"stmts": [], "end": lit(2)}})
        assert scope == Scope(Block([], Literal(2)))
        assert stmt_from_dict({"kind": "Let", "name": "a", "rhs": lit(1)}) == Let("a", Literal(1))

    def test_node_dispatch(self):
        """node_from_dict accepts blocks, statements and expressions"""
        assert isinstance(node_from_dict({"stmts": [], "end": lit(0)}), Block)
        assert isinstance(node_from_dict({"kind": "Mutate", "name": "x", "rhs": lit(0)}), Mutate)
        assert isinstance(node_from_dict(var("x")), Var)


class TestRejection:
    """Tests for malformed input"""

    @pytest.mark.parametrize("data", [
        {"kind": "Literal", "value": True},
        {"kind": "Literal", "value": 1.5},
        {"kind": "Literal"},
        {"kind": "Var", "name": 3},
        {"kind": "Infix", "op": "%", "left": {"kind": "Literal", "value": 1},
         "right": {"kind": "Literal", "value": 2}},
        {"kind": "Call", "name": "f", "args": {}},
        {"kind": "Loop"},
        [],
    ])
    def test_bad_expression(self, data):
        with pytest.raises(AstFormatError):
            expr_from_dict(data)

    def test_bad_statement(self):
        with pytest.raises(AstFormatError):
            stmt_from_dict({"kind": "Let", "rhs": lit(1)})
        with pytest.raises(AstFormatError):
            stmt_from_dict(lit(1))

    def test_bad_block(self):
        with pytest.raises(AstFormatError):
            block_from_dict({"stmts": {}, "end": lit(0)})
        with pytest.raises(AstFormatError):
            block_from_dict({"stmts": []})

    def test_statement_is_not_a_program(self):
        with pytest.raises(AstFormatError):
            program_from_json(json.dumps({"kind": "Let", "name": "x", "rhs": lit(1)}))

    def test_invalid_json(self):
        with pytest.raises(AstFormatError) as exc:
            program_from_json("{not json")
        assert "Invalid JSON" in str(exc.value)

    def test_format_error_is_a_value_error(self):
        assert issubclass(AstFormatError, ValueError)
