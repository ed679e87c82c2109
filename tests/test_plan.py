"""
Tests for braceweave.plan

Test Coverage:
- build_plan(): op order, no-tail segments, literal-only templates
- EmissionPlan: estimated_size, to_dict, digest
"""
from braceweave.compiler import compile_source
from braceweave.dialect import RUST
from braceweave.plan import EmissionPlan, RunStatements, WriteFormatted, WriteLiteral
from braceweave.source import TemplateSource


def _plan(text, path="p.tmpl"):
    return compile_source(TemplateSource(path=path, text=text), RUST).plan


class TestBuildPlan:
    def test_build_when_statements_and_tail_then_ordered_ops(self):
        """Statements run before the formatted write of the same block."""
        plan = _plan("A{ let x = 1; x:03 }B{ side(); }")

        assert [type(op) for op in plan.ops] == [
            WriteLiteral,
            RunStatements,
            WriteFormatted,
            WriteLiteral,
            RunStatements,
        ]
        assert plan.ops[0] == WriteLiteral(text="A", offset=0)
        assert plan.ops[1] == RunStatements(code_text=" let x = 1;", offset=2)
        assert plan.ops[2].expr_text == "x"
        assert plan.ops[2].format_spec.raw == "03"
        assert plan.ops[2].offset == 14
        assert plan.ops[3] == WriteLiteral(text="B", offset=20)
        assert plan.ops[4] == RunStatements(code_text=" side();", offset=22)

    def test_build_when_block_ends_with_terminator_then_no_formatted_write(self):
        """A terminator-ended block emits nothing visible."""
        plan = _plan("{ a(); b(); }")

        assert not any(isinstance(op, WriteFormatted) for op in plan.ops)

    def test_build_when_no_code_then_single_literal(self):
        """A plain file is one literal write of the whole text."""
        plan = _plan("just text\n")

        assert plan.ops == (WriteLiteral(text="just text\n", offset=0),)

    def test_build_when_expression_only_then_no_statements_op(self):
        """Blank statements are not emitted."""
        plan = _plan("{value}")

        assert plan.ops == (WriteFormatted(expr_text="value", format_spec=None, offset=1),)

    def test_build_when_literal_has_whitespace_then_kept_verbatim(self):
        """Literal text is never trimmed."""
        plan = _plan("  \n{x}\n  ")

        assert plan.ops[0].text == "  \n"
        assert plan.ops[-1].text == "\n  "

    def test_build_when_statements_then_debug_tail_then_debug_write(self):
        """`{ let v = make_list(1,2,3); v:? }` runs the let, then writes v in debug form."""
        plan = _plan("{ let v = make_list(1,2,3); v:? }")

        assert plan.ops[0] == RunStatements(code_text=" let v = make_list(1,2,3);", offset=1)
        write = plan.ops[1]
        assert write.expr_text == "v"
        assert write.format_spec.is_debug
        assert not write.format_spec.is_pretty
        assert len(plan.ops) == 2


class TestEmissionPlan:
    def test_estimated_size_when_literals_and_writes_then_bytes_plus_sixteen(self):
        """Literal UTF-8 length plus 16 per formatted write."""
        plan = _plan("é{x}!")

        assert plan.estimated_size == 2 + 16 + 1

    def test_to_dict_when_serialized_then_op_names(self):
        """Each op serializes with its kind."""
        data = _plan("a{ s(); x:? }").to_dict()

        assert data["path"] == "p.tmpl"
        assert [op["op"] for op in data["ops"]] == ["write_literal", "run_statements", "write_formatted"]
        assert data["ops"][2]["format_spec"]["type"] == "?"

    def test_digest_when_same_source_then_identical(self):
        """Compiling the same text twice gives the same digest."""
        text = "x = { let a = 2; a * 3:>4 }\n"

        assert _plan(text).digest() == _plan(text).digest()
        assert _plan(text).digest().startswith("sha256:")

    def test_digest_when_text_changes_then_differs(self):
        """Any op change changes the digest."""
        assert _plan("a{x}").digest() != _plan("b{x}").digest()

    def test_empty_plan_when_no_ops_then_zero_size(self):
        """An empty plan estimates zero bytes."""
        assert EmissionPlan(path="e", ops=()).estimated_size == 0
