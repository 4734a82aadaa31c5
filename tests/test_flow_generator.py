import logging
import os

import pytest

from thrift2flow.generator import flow_generator
from thrift2flow.generator.flow_generator import ThriftFileConverter
from thrift2flow.generator.formatter import FormatterError, identity_formatter
from thrift2flow.parser.thrift_ast import (
    BaseType,
    Field,
    Identifier,
    Other,
    Struct,
    ThriftFile,
    Typedef,
)
from thrift2flow.parser.thrift_ast_parser import parse_thrift

SCHEMA_PATH = "/schemas/test.thrift"


def _converter(text: str, **kwargs) -> ThriftFileConverter:
    kwargs.setdefault("formatter", identity_formatter)
    return ThriftFileConverter(parse_thrift(text, path=SCHEMA_PATH), **kwargs)


def _convert(text: str, **kwargs) -> str:
    return _converter(text, **kwargs).generate_flow_file()


class TestStructs:
    def test_optional_field_is_marked(self):
        result = _convert("struct Person { 1: optional string name }")
        assert "name?: string;" in result

    def test_full_output(self):
        result = _convert(
            """\
struct Person {
    1: optional string name
    2: required i32 age
    3: list<string> nicknames
}
"""
        )
        assert result == (
            "// @flow\n"
            "\n"
            "export type Person = {|\n"
            "  name?: string;\n"
            "  age: number;\n"
            "  nicknames: string[];\n"
            "|};\n"
        )

    def test_field_order_is_preserved(self):
        names = ["zeta", "alpha", "mid", "beta"]
        fields = " ".join(f"{i}: i32 {n}" for i, n in enumerate(names, 1))
        result = _convert(f"struct Ordered {{ {fields} }}")
        positions = [result.index(f"  {n}: number;") for n in names]
        assert positions == sorted(positions)

    def test_exception_renders_like_struct(self):
        result = _convert("exception NotFound { 1: string message }")
        assert "export type NotFound = {|\n  message: string;\n|};" in result

    def test_empty_struct(self):
        assert "export type Empty = {||};" in _convert("struct Empty {}")

    def test_references_and_maps(self):
        result = _convert(
            """\
struct Address { 1: string city }
struct User {
    1: Address home
    2: map<string, Address> others
}
"""
        )
        assert "  home: Address;" in result
        assert "  others: {[string]: Address};" in result


class TestUnions:
    def test_union_of_exact_records(self):
        result = _convert("union Value { 1: string text 2: i32 number }")
        assert "export type Value = {|text: string|} | {|number: number|};" in result

    def test_empty_union(self):
        assert "export type Nothing = {||};" in _convert("union Nothing {}")


class TestEnums:
    def test_explicit_values(self):
        result = _convert("enum MyEnum { OK = 1, ERROR = 2 }")
        assert (
            'export type MyEnum = "OK" | "ERROR";\n'
            "export const MyEnumValueMap = {\n"
            '  "OK": 1,\n'
            '  "ERROR": 2,\n'
            "};"
        ) in result

    def test_implicit_values_are_declaration_indexes(self):
        result = _convert("enum Letters { A, B, C }")
        assert 'export type Letters = "A" | "B" | "C";' in result
        assert '  "A": 0,\n  "B": 1,\n  "C": 2,\n' in result

    def test_mixed_values(self):
        result = _convert("enum Mixed { A = 10, B, C = 3 }")
        assert '  "A": 10,\n  "B": 1,\n  "C": 3,\n' in result

    def test_empty_enum(self):
        result = _convert("enum Nothing {}")
        assert "export type Nothing = empty;" in result
        assert "export const NothingValueMap = {\n};" in result

    def test_value_map_keeps_the_untransformed_name(self):
        result = _convert("enum Status { OK }", transform_name=lambda n: f"{n}Type")
        assert 'export type StatusType = "OK";' in result
        assert "export const StatusValueMap = {" in result


class TestTypedefs:
    def test_typedef(self):
        result = _convert("typedef map<string, list<i32>> Scores")
        assert "export type Scores = {[string]: number[]};" in result

    def test_typedef_to_long(self):
        result = _convert('typedef i64 (js.type = "Long") Timestamp')
        assert "export type Timestamp = Long;" in result
        assert "import Long from 'long';" in result


class TestServices:
    def test_functions(self):
        result = _convert(
            """\
struct User { 1: string id }
service UserService {
    void ping()
    User getUser(1: string id, 2: optional bool full)
}
"""
        )
        assert (
            "export type UserService = {\n"
            "  ping: () => void,\n"
            "  getUser: (id: string, full?: boolean) => User,\n"
            "};"
        ) in result

    def test_extends_spreads_the_base_service(self):
        result = _convert(
            """\
include "shared.thrift"
service Child extends shared.Base { void go() }
"""
        )
        assert "  ...shared.Base,\n  go: () => void,\n" in result

    def test_empty_service(self):
        assert "export type Nothing = {};" in _convert("service Nothing {}")


class TestConsts:
    def test_scalars(self):
        result = _convert(
            """\
const string GREETING = "hello"
const i32 ANSWER = 42
const double RATIO = 1.5
const bool ENABLED = true
"""
        )
        assert "export const GREETING: string = 'hello';" in result
        assert "export const ANSWER: number = 42;" in result
        assert "export const RATIO: number = 1.5;" in result
        assert "export const ENABLED: boolean = true;" in result

    def test_escape_sequences_are_preserved(self):
        result = _convert('const string S = "a\\nb\\tc\\\\d"')
        assert "export const S: string = 'a\\nb\\tc\\\\d';" in result

    def test_unicode_escape_is_decoded(self):
        result = _convert('const string E = "caf\\u00e9"')
        assert "export const E: string = 'café';" in result

    def test_out_of_range_doubles(self):
        result = _convert("const double BIG = 1e400\nconst double SMALL = -1e400")
        assert "export const BIG: number = Infinity;" in result
        assert "export const SMALL: number = -Infinity;" in result

    def test_quotes_are_escaped(self):
        result = _convert("const string QUOTE = \"it's\"")
        assert "export const QUOTE: string = 'it\\'s';" in result

    def test_identifier_reference(self):
        result = _convert(
            """\
enum Status { OK, ERROR }
const Status DEFAULT = Status.OK
"""
        )
        assert "export const DEFAULT: Status = Status.OK;" in result

    def test_nested_list(self):
        result = _convert('const list<list<string>> GRID = [["a", "b"], ["c"]]')
        assert "export const GRID: string[][] = [['a', 'b'], ['c']];" in result

    def test_list_of_identifiers_and_numbers(self):
        result = _convert("const list<i32> NUMS = [1, LIMIT, -3]")
        assert "= [1, LIMIT, -3];" in result

    def test_map(self):
        result = _convert('const map<string, i32> LIMITS = {"a": 1, "b": 2}')
        assert "export const LIMITS: {[string]: number} = {'a': 1, 'b': 2};" in result


class TestImportsInOutput:
    def test_no_import_block_without_includes(self):
        result = _convert("typedef string Name")
        assert result == "// @flow\n\nexport type Name = string;\n"

    def test_single_long_import_for_many_fields(self):
        result = _convert(
            """\
struct A {
    1: i64 (js.type = "Long") first
    2: i64 (js.type = "Long") second
}
struct B { 1: i64 (js.type = "Long") third }
"""
        )
        assert result.count("import Long from 'long';") == 1
        assert "  first: Long;" in result

    def test_imports_precede_definitions(self):
        result = _convert(
            """\
include "shared.thrift"
struct A { 1: i64 (js.type = "Long") at 2: shared.Thing thing }
"""
        )
        assert result.index("import * as shared from './shared';") < result.index(
            "import Long from 'long';"
        )
        assert result.index("import Long from 'long';") < result.index("export type A")
        assert "  thing: shared.Thing;" in result

    def test_colliding_includes_from_disk(self, tmp_path):
        (tmp_path / "foo").mkdir()
        (tmp_path / "baz").mkdir()
        (tmp_path / "foo" / "bar.thrift").write_text("typedef string A\n")
        (tmp_path / "baz" / "bar.thrift").write_text("typedef string B\n")
        main = tmp_path / "main.thrift"
        main.write_text('include "foo/bar.thrift"\ninclude "baz/bar.thrift"\n')

        converter = ThriftFileConverter.from_path(str(main), formatter=identity_formatter)
        result = converter.generate_flow_file()

        assert "import * as _bar from './foo/bar';" in result
        assert "import * as bar from './baz/bar';" in result
        assert sorted(converter.get_import_abs_paths()) == sorted(
            str(p.resolve())
            for p in (main, tmp_path / "foo" / "bar.thrift", tmp_path / "baz" / "bar.thrift")
        )


class TestAssembly:
    def test_withsource_comment(self):
        result = _convert("typedef string Name", withsource=True)
        assert result.startswith(f"// @flow\n\n// Source: {SCHEMA_PATH}\n\nexport type Name")

    def test_definitions_separated_by_one_blank_line(self):
        result = _convert("typedef string A\ntypedef string B")
        assert "export type A = string;\n\nexport type B = string;\n" in result

    def test_idempotent(self):
        text = """\
include "shared.thrift"
enum E { X, Y }
struct S { 1: optional E e 2: i64 (js.type = "Long") n }
service Svc { E get(1: S s) }
"""
        converter = _converter(text)
        assert converter.generate_flow_file() == converter.generate_flow_file()
        assert _convert(text) == _convert(text)

    def test_template_environment_is_built_once(self, monkeypatch):
        calls = []
        real_env = flow_generator._get_template_env

        def counting_env():
            calls.append(1)
            return real_env()

        monkeypatch.setattr(flow_generator, "_get_template_env", counting_env)
        converter = _converter("enum A { X }\nenum B { Y }")
        converter.generate_flow_file()
        converter.generate_flow_file()
        assert len(calls) == 1

    def test_formatter_gets_flow_parser(self):
        calls = []

        def recording_formatter(source, parser):
            calls.append(parser)
            return "formatted"

        assert _convert("typedef string A", formatter=recording_formatter) == "formatted"
        assert calls == ["flow"]

    def test_formatter_error_names_the_file(self):
        def failing_formatter(source, parser):
            raise FormatterError("SyntaxError: Unexpected token")

        with pytest.raises(FormatterError) as exc_info:
            _convert("typedef string A", formatter=failing_formatter)
        assert exc_info.value.path == SCHEMA_PATH
        assert SCHEMA_PATH in str(exc_info.value)

    def test_name_transform(self):
        result = _convert(
            """\
struct Inner { 1: string s }
struct Outer { 1: Inner inner }
""",
            transform_name=lambda n: f"{n}T",
        )
        assert "export type InnerT = {|" in result
        assert "export type OuterT = {|\n  inner: InnerT;\n|};" in result


class TestDiagnostics:
    def test_unsupported_definition_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING):
            result = _convert(
                """\
typedef string Before
senum Colors { "red", "green" }
typedef string After
"""
            )
        assert "Colors" not in result
        assert "export type Before = string;" in result
        assert "export type After = string;" in result
        assert "test.thrift: Skipping Senum Colors" in caplog.text

    def test_unsupported_definition_without_name(self, caplog):
        thrift = ThriftFile(path=SCHEMA_PATH, definitions=[Other(kind="Mystery")])
        with caplog.at_level(logging.WARNING):
            result = ThriftFileConverter(thrift, formatter=identity_formatter).generate_flow_file()
        assert result == "// @flow\n"
        assert "Skipping Mystery ?" in caplog.text

    def test_unsupported_type_is_scoped_to_its_field(self, caplog):
        struct = Struct(
            Identifier("Broken"),
            [
                Field(1, "a", BaseType("string")),
                Field(2, "b", BaseType("uuid")),
                Field(3, "c", BaseType("i32")),
            ],
        )
        typedef = Typedef(Identifier("Fine"), BaseType("bool"))
        thrift = ThriftFile(path=SCHEMA_PATH, definitions=[struct, typedef])

        with caplog.at_level(logging.WARNING):
            result = ThriftFileConverter(thrift, formatter=identity_formatter).generate_flow_file()

        assert "  a: string;\n  b: any;\n  c: number;\n" in result
        assert "export type Fine = boolean;" in result
        assert "Broken.b" in caplog.text
        assert "uuid" in caplog.text
        assert os.path.basename(SCHEMA_PATH) in caplog.text
