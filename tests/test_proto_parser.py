import pytest

from protoc_wire.parser.proto_ast import ProtoEnum, ProtoMessage, ProtoService
from protoc_wire.parser.proto_ast_parser import ProtoParseError, parse_int
from protoc_wire.parser.proto_parser import parse_proto_text
from protoc_wire.parser.proto_transform import LinkError, declared_names, resolve_type


DINOSAUR_PROTO = """\
syntax = "proto2";

package squareup.dinosaurs;

option java_package = "com.squareup.dinosaurs";

import "squareup/geology/period.proto";

message Dinosaur {
  // Common name of this dinosaur, like "Stegosaurus".
  optional string name = 1;

  repeated string picture_urls = 2;
  optional double length_meters = 3 [default = 0.0];
  optional squareup.geology.Period period = 5;
  map<string, int32> bones = 6;

  oneof diet {
    string plant = 7;
    string prey = 8;
  }

  message Fossil {
    required int64 age = 1;
  }

  enum Color {
    option allow_alias = true;
    GREEN = 0;
    BROWN = 1;
    KHAKI = 1;
  }
}

service Museum {
  rpc Visit (Dinosaur) returns (Dinosaur);
  rpc Tour (stream Dinosaur) returns (stream Dinosaur) {
    option deprecated = true;
  }
}
"""


class TestParseFile:
    def test_header(self):
        ast = parse_proto_text(DINOSAUR_PROTO)
        assert ast.package == "squareup.dinosaurs"
        assert ast.imports == ["squareup/geology/period.proto"]
        assert ast.options["java_package"] == "com.squareup.dinosaurs"

    def test_declarations_in_source_order(self):
        ast = parse_proto_text(DINOSAUR_PROTO)
        assert [type(d) for d in ast.declarations] == [ProtoMessage, ProtoService]

    def test_message_fields(self):
        msg = parse_proto_text(DINOSAUR_PROTO).declarations[0]
        assert msg.name == "Dinosaur"
        by_name = {f.field_name: f for f in msg.fields}

        assert by_name["name"].label == "optional"
        assert by_name["name"].type_name == "string"
        assert by_name["picture_urls"].label == "repeated"
        assert by_name["length_meters"].field_number == 3
        assert by_name["period"].type_name == "squareup.geology.Period"
        assert by_name["bones"].key_type == "string"
        assert by_name["bones"].type_name == "int32"
        assert by_name["plant"].oneof == "diet"
        assert by_name["prey"].oneof == "diet"

    def test_nested_declarations(self):
        msg = parse_proto_text(DINOSAUR_PROTO).declarations[0]
        assert [m.name for m in msg.nested_messages] == ["Fossil"]
        assert msg.nested_messages[0].fields[0].label == "required"
        color = msg.nested_enums[0]
        assert isinstance(color, ProtoEnum)
        assert [(v.name, v.number) for v in color.values] == [
            ("GREEN", 0), ("BROWN", 1), ("KHAKI", 1),
        ]

    def test_service(self):
        service = parse_proto_text(DINOSAUR_PROTO).declarations[1]
        assert service.name == "Museum"
        visit, tour = service.rpcs
        assert (visit.input_type, visit.output_type) == ("Dinosaur", "Dinosaur")
        assert not visit.client_streaming and not visit.server_streaming
        assert tour.client_streaming and tour.server_streaming

    def test_keyword_as_field_name(self):
        ast = parse_proto_text("message M { string message = 1; int32 service = 2; }")
        assert [f.field_name for f in ast.declarations[0].fields] == ["message", "service"]


class TestParseErrors:
    def test_missing_semicolon_reports_position(self):
        with pytest.raises(ProtoParseError, match=r"Line 3:1"):
            parse_proto_text("message M {\n  string name = 1\n}\n")

    def test_missing_field_number(self):
        with pytest.raises(ProtoParseError):
            parse_proto_text("message M { string name = ; }")


class TestParseInt:
    def test_decimal_hex_and_octal(self):
        assert parse_int("42") == 42
        assert parse_int("0x1F") == 31
        assert parse_int("017") == 15
        assert parse_int("-3") == -3
        assert parse_int("0") == 0


class TestLinking:
    def test_declared_names(self):
        ast = parse_proto_text(DINOSAUR_PROTO)
        assert declared_names(ast) == [
            "squareup.dinosaurs.Dinosaur",
            "squareup.dinosaurs.Dinosaur.Fossil",
            "squareup.dinosaurs.Dinosaur.Color",
            "squareup.dinosaurs.Museum",
        ]

    def test_resolve_scalar(self):
        assert resolve_type("string", "a.B", set()) == "string"

    def test_resolve_innermost_scope_first(self):
        known = {"a.Inner", "a.B.Inner"}
        assert resolve_type("Inner", "a.B", known) == "a.B.Inner"
        assert resolve_type("Inner", "a.C", known) == "a.Inner"

    def test_resolve_absolute(self):
        known = {"a.Inner", "a.B.Inner"}
        assert resolve_type(".a.Inner", "a.B", known) == "a.Inner"

    def test_unresolvable(self):
        with pytest.raises(LinkError, match="Missing"):
            resolve_type("Missing", "a.B", {"a.B"})
