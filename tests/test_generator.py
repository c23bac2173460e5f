"""Go generator rules checked against whole outputs."""

import pytest

from gopy import CompileError, compile_source
from gopy.ast import ExpressionStatement, Pos, Program
from gopy.backend.go import GenerateError, GoGenerator
from gopy.backend.util import escape_string
from gopy.parse import parse


def generate(source: str) -> str:
    program, errors = parse(source)
    assert errors == []
    return GoGenerator().generate(program)


def test_output_layout_without_fmt():
    assert generate("let x = 1\nx = 2\n") == (
        "package main\n"
        "\n"
        "func main() {\n"
        "\tx := 1\n"
        "\t_ = x\n"
        "\tx = 2\n"
        "}\n"
    )


def test_output_layout_with_declarations():
    source = "class P x\n    def get(self)\n        return self.x\ndef one()\n    return 1\nprint(one())\n"
    assert generate(source) == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        ")\n"
        "\n"
        "type P struct {\n"
        "\tx interface{}\n"
        "}\n"
        "\n"
        "func (self *P) get() interface{} {\n"
        "\treturn self.x\n"
        "}\n"
        "\n"
        "func one() interface{} {\n"
        "\treturn int64(1)\n"
        "}\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(one())\n"
        "}\n"
    )


def test_let_declares_once():
    output = generate("let x = 123\nprint(x)\nlet x = 4\nx = 5\n")
    assert output.count("x := 123") == 1
    assert output.count("x :=") == 1
    assert "\tx = 4\n" in output
    assert "\tx = 5\n" in output


def test_unread_function_local_is_discarded():
    output = generate("def f(a)\n    let b = 1\n    return a\n")
    assert "\tvar b interface{} = int64(1)\n\t_ = b\n\treturn a\n" in output


def test_unread_block_local_is_discarded_in_its_block():
    output = generate("for i in 2\n    let v = i\nprint(1)\n")
    assert "\t\tv := i\n\t\t_ = v\n\t}\n" in output


def test_read_locals_are_not_discarded():
    output = generate("let x = 1\nif true\n    print(x)\n")
    assert "_ =" not in output


def test_rebinding_to_another_kind_is_an_error():
    program, _ = parse('let x = 1\nx = "s"\nprint(x)\n')
    with pytest.raises(GenerateError) as exc:
        GoGenerator().generate(program)
    assert exc.value.msg == "cannot rebind x from int to string"
    assert exc.value.node_type == "AssignmentStatement"


def test_boxed_local_accepts_any_kind():
    output = generate('def f(a)\n    let x = 1\n    x = "s"\n    return x\n')
    assert '\tx = "s"\n' in output


def test_assignment_to_new_name_declares_it():
    output = generate("y = 3\nprint(y)\n")
    assert "\ty := 3\n" in output


def test_block_declarations_stay_in_block():
    output = generate("let c = true\nif c\n    let v = 1\n    print(v)\nelse\n    let v = 2\n    print(v)\n")
    assert output.count("v := ") == 2


def test_construction_in_binding_position():
    output = generate("class Dog name\n    def bark(self)\n        return 1\nlet d = Dog()\nd.bark()\n")
    assert "\td := &Dog{}\n" in output


def test_booleans_stay_booleans():
    output = generate("let t = true\nlet f = false\nprint(t, f)\n")
    assert "\tt := true\n" in output
    assert "\tf := false\n" in output


def test_if_else_emits_both_branches():
    output = generate("let x = 1\nif x < 2\n    print(1)\nelse\n    print(2)\n")
    assert "if (x < 2) {" in output
    assert "} else {" in output
    assert output.count("fmt.Println") == 2


def test_if_without_else_has_no_else_branch():
    output = generate("let x = 1\nif x < 2\n    print(1)\n")
    assert "else" not in output


def test_implicit_return_added_once():
    output = generate("def f(a)\n    print(a)\n")
    assert output.count("return nil") == 1


def test_no_implicit_return_after_explicit_return():
    output = generate("def f(a)\n    return a\n")
    assert "return nil" not in output
    assert "\treturn a\n" in output


def test_empty_body_returns_nil():
    program, _ = parse("def f(a)\n    return a\n")
    program.statements[0].value.body.statements.clear()
    output = GoGenerator().generate(program)
    assert "func f(a interface{}) interface{} {\n\treturn nil\n}" in output


def test_function_operands_cast_but_entry_operands_not():
    output = generate("def add(a, b)\n    return a + b\nlet a = 1\nlet b = 2\nprint(a + b)\n")
    assert "((a.(int64)) + (b.(int64)))" in output
    assert "fmt.Println((a + b))" in output


def test_struct_fields_and_method_signature():
    output = generate("class Dog name age\n    def bark(self, times, loud)\n        return times\n")
    assert "type Dog struct {\n\tname interface{}\n\tage interface{}\n}\n" in output
    assert "func (self *Dog) bark(times interface{}, loud interface{}) interface{} {" in output


def test_generate_error_names_node_type():
    program, _ = parse("let x = if true\n    1\n")
    with pytest.raises(GenerateError) as exc:
        GoGenerator().generate(program)
    assert exc.value.node_type == "IfExpression"
    assert exc.value.msg == "if cannot be used as a value"
    assert "at line 1" in str(exc.value)


def test_absent_node_is_generate_error():
    program = Program([ExpressionStatement(Pos(1, 1), None)])
    with pytest.raises(GenerateError) as exc:
        GoGenerator().generate(program)
    assert exc.value.node_type == "None"
    assert "missing expression" in str(exc.value)


def test_absent_statement_is_generate_error():
    with pytest.raises(GenerateError) as exc:
        GoGenerator().generate(Program([None]))
    assert exc.value.node_type == "None"


def test_compile_source_returns_go():
    assert compile_source("print(1)\n").startswith("package main\n")


def test_compile_source_raises_on_parse_errors():
    with pytest.raises(CompileError) as exc:
        compile_source("let = 1\n")
    assert exc.value.errors
    assert "expected next token to be IDENT" in exc.value.errors[0]


def test_compile_source_propagates_generate_errors():
    with pytest.raises(GenerateError):
        compile_source("print(missing)\n")


@pytest.mark.parametrize(
    "value,expected",
    [
        ("a\\tb", "a\\tb"),
        ("q\\\\", "q\\\\"),
        ("\\101\\x41\\u00e9\\U0001F600", "\\101\\x41\\u00e9\\U0001F600"),
        ("C:\\path", "C:\\\\path"),
        ("end\\", "end\\\\"),
        ("\\uD800", "\\\\uD800"),
        ("\\777", "\\\\777"),
        ("line\nbreak\ttab", "line\\nbreak\\ttab"),
        ('say "hi"', 'say \\"hi\\"'),
        ("\x00\x7f", "\\x00\\x7f"),
    ],
)
def test_escape_string(value: str, expected: str):
    assert escape_string(value) == expected
