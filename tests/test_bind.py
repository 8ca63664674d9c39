"""Tests for switchyard.binding: source tags, the binder, and its error taxonomy."""

import datetime as dt
import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Self
from urllib.parse import urlencode

import pytest

from switchyard.binding import (
    Source,
    UInt8,
    bind,
    body,
    field_specs,
    form,
    path,
    query,
)
from switchyard.errors import (
    BindError,
    BodySyntaxError,
    ConfigurationError,
    FieldFormatError,
    FormParseError,
    UnknownBodyError,
    UnsupportedContentTypeError,
)
from switchyard.http.request import Request

ZERO_UUID = uuid.UUID(int=0)
SAMPLE_ID = "0976b7cd-988b-45a7-a48a-af527c1ed9e3"


def _make_request(
    method: str = "POST",
    url: str = "/",
    *,
    body: bytes = b"",
    content_type: str | None = None,
    path_params: dict[str, str] | None = None,
) -> Request:
    path_part, _, query_string = url.partition("?")
    headers = [(b"content-type", content_type.encode())] if content_type else []
    scope = {
        "type": "http",
        "method": method,
        "path": path_part,
        "query_string": query_string.encode(),
        "headers": headers,
    }
    sent = False

    async def receive() -> dict[str, Any]:
        nonlocal sent
        if sent:
            return {"type": "http.disconnect"}
        sent = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request.from_asgi(scope, receive).with_path_params(path_params)


def _json_request(payload: Any) -> Request:
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return _make_request(body=raw, content_type="application/json")


def _form_request(data: dict[str, str] | bytes) -> Request:
    raw = data if isinstance(data, bytes) else urlencode(data).encode()
    return _make_request(body=raw, content_type="application/x-www-form-urlencoded")


class ResourceID:
    """Accepts only UUID strings, through the text capability."""

    def __init__(self, value: str) -> None:
        self.value = value

    @classmethod
    def from_text(cls, text: str) -> Self:
        if not text:
            raise ValueError("empty string")
        uuid.UUID(text)
        return cls(text)


class ResourceRef:
    """Accepts only quoted UUID strings, through the JSON capability."""

    def __init__(self, value: str) -> None:
        self.value = value

    @classmethod
    def from_json(cls, raw: str) -> Self:
        text = json.loads(raw)
        if not isinstance(text, str) or not text:
            raise ValueError("empty string")
        uuid.UUID(text)
        return cls(text)


# -- Field source tags --


class TestFieldSpecs:
    def test_helpers_set_metadata(self) -> None:
        @dataclass
        class Params:
            a: str = body("a", default="")
            b: int = path("b", default=0)
            c: int = query("c", default=0)
            d: str = form("d", default="")

        specs = field_specs(Params)
        assert [(s.attr, s.key, s.source) for s in specs] == [
            ("a", "a", Source.BODY),
            ("b", "b", Source.PATH),
            ("c", "c", Source.QUERY),
            ("d", "d", Source.FORM),
        ]

    def test_precedence(self) -> None:
        @dataclass
        class Params:
            x: str = field(default="", metadata={"form": "f", "query": "q", "path": "p"})
            y: str = field(default="", metadata={"query": "q", "body": "b"})

        sources = {s.attr: (s.source, s.key) for s in field_specs(Params)}
        assert sources["x"] == (Source.PATH, "p")
        assert sources["y"] == (Source.BODY, "b")

    def test_untagged_field(self) -> None:
        @dataclass
        class Params:
            name: str = ""

        with pytest.raises(ConfigurationError, match="no source tag"):
            field_specs(Params)

    def test_cached_per_class(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")

        assert field_specs(Params) is field_specs(Params)

    def test_helpers_keep_caller_metadata(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="", metadata={"doc": "search"})

        (f,) = Params.__dataclass_fields__.values()
        assert f.metadata == {"doc": "search", "query": "q"}


# -- Targets --


class TestTargets:
    async def test_class_is_instantiated(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")

        result = await bind(_make_request("GET", "/?q=x"), Params)
        assert result == Params(q="x")

    async def test_instance_is_filled_in_place(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")
            page: int = query("page", default=1)

        target = Params(q="keep")
        result = await bind(_make_request("GET", "/?page=3"), target)
        assert result is target
        assert target.q == "keep"
        assert target.page == 3

    async def test_non_dataclass(self) -> None:
        class Plain:
            pass

        with pytest.raises(ConfigurationError):
            await bind(_make_request(), Plain)
        with pytest.raises(ConfigurationError):
            await bind(_make_request(), {"q": 1})

    async def test_class_without_defaults(self) -> None:
        @dataclass
        class Params:
            q: str = query("q")

        with pytest.raises(ConfigurationError, match="default"):
            await bind(_make_request(), Params)

    async def test_unsupported_field_type(self) -> None:
        @dataclass
        class Params:
            tags: list[str] = query("tags", default_factory=list)

        with pytest.raises(ConfigurationError):
            await bind(_make_request("GET", "/?tags=a"), Params)


# -- Content-type gate --


class TestContentType:
    @pytest.mark.parametrize(
        "content_type", ["text/plain", "multipart/form-data; boundary=x", "application/xml"]
    )
    async def test_rejected(self, content_type: str) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")

        request = _make_request(content_type=content_type, body=b"x")
        with pytest.raises(UnsupportedContentTypeError) as exc_info:
            await bind(request, Params)
        assert not isinstance(exc_info.value, BindError)
        assert exc_info.value.content_type == content_type

    @pytest.mark.parametrize(
        "content_type",
        [
            "application/json",
            "application/json; charset=utf-8",
            "application/x-www-form-urlencoded",
        ],
    )
    async def test_accepted(self, content_type: str) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")

        result = await bind(_make_request(url="/?q=ok", content_type=content_type), Params)
        assert result.q == "ok"

    async def test_absent_content_type_skips_gate(self) -> None:
        @dataclass
        class Params:
            name: str = body("name", default="")

        request = _make_request(body=b'{"name": "untyped"}')
        result = await bind(request, Params)
        assert result.name == "untyped"


# -- JSON body --


@dataclass
class Profile:
    name: str = body("name", default="")
    age: int = body("age", default=0)
    nickname: str | None = body("nickname", default=None)
    level: int | None = body("level", default=None)
    born: dt.datetime | None = body("born", default=None)
    account: uuid.UUID = body("account", default=ZERO_UUID)
    ref: ResourceRef | None = body("ref", default=None)
    alias: ResourceID | None = body("alias", default=None)


class TestJSONBody:
    async def test_all_field_kinds(self) -> None:
        request = _json_request(
            {
                "name": "test string",
                "age": 123,
                "nickname": "optional string",
                "level": 456,
                "born": "2006-01-02T15:04:05.000000Z",
                "account": "00000000-0000-0000-0000-000000000000",
                "ref": SAMPLE_ID,
                "alias": SAMPLE_ID,
            }
        )
        result = await bind(request, Profile)

        assert result.name == "test string"
        assert result.age == 123
        assert result.nickname == "optional string"
        assert result.level == 456
        assert result.born == dt.datetime(2006, 1, 2, 15, 4, 5, tzinfo=dt.UTC)
        assert result.account == ZERO_UUID
        assert result.ref is not None and result.ref.value == SAMPLE_ID
        assert result.alias is not None and result.alias.value == SAMPLE_ID

    async def test_unknown_keys_ignored(self) -> None:
        result = await bind(_json_request({"name": "a", "unexpected": [1, 2]}), Profile)
        assert result.name == "a"

    async def test_absent_keys_leave_defaults(self) -> None:
        target = Profile(name="before", age=7)
        await bind(_json_request({"nickname": "n"}), target)
        assert target.name == "before"
        assert target.age == 7
        assert target.nickname == "n"

    async def test_null_clears_optional_and_skips_required(self) -> None:
        target = Profile(name="keep", nickname="old")
        await bind(_json_request({"name": None, "nickname": None}), target)
        assert target.name == "keep"
        assert target.nickname is None

    async def test_empty_body_is_not_decoded(self) -> None:
        result = await bind(_make_request(content_type="application/json"), Profile)
        assert result == Profile()

    async def test_collections_and_nested(self) -> None:
        @dataclass
        class Line:
            sku: str = ""
            qty: int = 1

        @dataclass
        class Order:
            lines: list[Line] = body("lines", default_factory=list)
            meta: dict[str, Any] = body("meta", default_factory=dict)

        payload = {"lines": [{"sku": "a"}, {"sku": "b", "qty": 2}], "meta": {"k": [1]}}
        result = await bind(_json_request(payload), Order)
        assert result.lines == [Line("a", 1), Line("b", 2)]
        assert result.meta == {"k": [1]}

    async def test_truncated_json_is_syntax_error(self) -> None:
        with pytest.raises(BindError) as exc_info:
            await bind(_json_request(b'{"a":4'), Profile)
        kind = exc_info.value.error
        assert isinstance(kind, BodySyntaxError)
        assert kind.raw == '{"a":4'
        assert exc_info.value.__cause__ is kind

    async def test_invalid_utf8_is_syntax_error(self) -> None:
        with pytest.raises(BindError) as exc_info:
            await bind(_json_request(b'{"name": "\xff"}'), Profile)
        assert isinstance(exc_info.value.error, BodySyntaxError)

    async def test_type_mismatch_names_field(self) -> None:
        with pytest.raises(BindError) as exc_info:
            await bind(_json_request({"name": "ok", "age": "invalid"}), Profile)
        kind = exc_info.value.error
        assert isinstance(kind, FieldFormatError)
        assert kind.field == "age"

    @pytest.mark.parametrize("raw", [b'{"ratio": 1e400}', b'{"ratio": -1e400}', b'{"ratio": NaN}'])
    async def test_non_finite_number_names_field(self, raw: bytes) -> None:
        @dataclass
        class Params:
            ratio: float = body("ratio", default=0.0)

        with pytest.raises(BindError) as exc_info:
            await bind(_json_request(raw), Params)
        assert isinstance(exc_info.value.error, FieldFormatError)
        assert exc_info.value.error.field == "ratio"

    async def test_number_for_string(self) -> None:
        with pytest.raises(BindError) as exc_info:
            await bind(_json_request({"name": 5}), Profile)
        assert isinstance(exc_info.value.error, FieldFormatError)
        assert exc_info.value.error.field == "name"

    async def test_nested_mismatch_path(self) -> None:
        @dataclass
        class Line:
            qty: int = 0

        @dataclass
        class Order:
            lines: list[Line] = body("lines", default_factory=list)

        with pytest.raises(BindError) as exc_info:
            await bind(_json_request({"lines": [{"qty": 1}, {"qty": "x"}]}), Order)
        assert exc_info.value.error.field == "lines[1].qty"

    async def test_sized_overflow_is_field_error(self) -> None:
        @dataclass
        class Params:
            level: UInt8 = body("level", default=0)

        with pytest.raises(BindError) as exc_info:
            await bind(_json_request({"level": 256}), Params)
        assert isinstance(exc_info.value.error, FieldFormatError)

    async def test_non_object_document(self) -> None:
        with pytest.raises(BindError) as exc_info:
            await bind(_json_request([1, 2]), Profile)
        assert isinstance(exc_info.value.error, FieldFormatError)

    @pytest.mark.parametrize(
        "payload",
        [
            {"account": "not-a-uuid"},
            {"born": "2006-01-02"},
            {"ref": ""},
            {"alias": "bad"},
        ],
    )
    async def test_extension_failure_is_unknown_body_error(self, payload: dict[str, Any]) -> None:
        request = _json_request(payload)
        with pytest.raises(BindError) as exc_info:
            await bind(request, Profile)
        kind = exc_info.value.error
        assert isinstance(kind, UnknownBodyError)
        assert kind.raw == json.dumps(payload)
        assert kind.cause is not None

    async def test_body_is_rereadable(self) -> None:
        raw = b'{"name": "again"}'
        request = _json_request(raw)
        await bind(request, Profile)
        assert await request.body() == raw
        assert await request.json() == {"name": "again"}

    async def test_body_read_before_bind(self) -> None:
        raw = b'{"age": 3}'
        request = _json_request(raw)
        assert await request.body() == raw
        result = await bind(request, Profile)
        assert result.age == 3


# -- Query, path, and form --


class TestQuery:
    async def test_values(self) -> None:
        @dataclass
        class Params:
            field1: str = query("field1", default="")
            field2: int = query("field2", default=0)
            field3: str | None = query("field3", default=None)

        result = await bind(_make_request("GET", "/?field1=test&field2=123"), Params)
        assert result.field1 == "test"
        assert result.field2 == 123
        assert result.field3 is None

    async def test_absent_is_not_an_error(self) -> None:
        @dataclass
        class Params:
            page: int = query("page", default=0)

        result = await bind(_make_request("GET", "/"), Params)
        assert result.page == 0

    async def test_empty_string_field(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="unset")

        result = await bind(_make_request("GET", "/?q="), Params)
        assert result.q == ""

    async def test_empty_number_fails(self) -> None:
        @dataclass
        class Params:
            page: int = query("page", default=0)

        with pytest.raises(BindError) as exc_info:
            await bind(_make_request("GET", "/?page="), Params)
        assert isinstance(exc_info.value.error, FieldFormatError)
        assert exc_info.value.error.field == "page"

    async def test_first_value_wins(self) -> None:
        @dataclass
        class Params:
            tag: str = query("tag", default="")

        result = await bind(_make_request("GET", "/?tag=a&tag=b"), Params)
        assert result.tag == "a"

    async def test_invalid_value(self) -> None:
        @dataclass
        class Params:
            field2: int = query("field2", default=0)

        with pytest.raises(BindError) as exc_info:
            await bind(_make_request("GET", "/?field2=invalid"), Params)
        kind = exc_info.value.error
        assert isinstance(kind, FieldFormatError)
        assert isinstance(kind.cause, ValueError)


class TestPath:
    async def test_int(self) -> None:
        @dataclass
        class Params:
            id: int = path("id", default=0)

        request = _make_request("GET", "/test/123", path_params={"id": "123"})
        assert (await bind(request, Params)).id == 123

    async def test_uuid(self) -> None:
        @dataclass
        class Params:
            id: uuid.UUID = path("id", default=ZERO_UUID)

        request = _make_request("GET", f"/test/{SAMPLE_ID}", path_params={"id": SAMPLE_ID})
        assert str((await bind(request, Params)).id) == SAMPLE_ID

    async def test_text_capability(self) -> None:
        @dataclass
        class Params:
            id: ResourceID | None = path("id", default=None)

        request = _make_request("GET", f"/test/{SAMPLE_ID}", path_params={"id": SAMPLE_ID})
        result = await bind(request, Params)
        assert result.id is not None and result.id.value == SAMPLE_ID

    async def test_json_capability_with_quoted_token(self) -> None:
        @dataclass
        class Params:
            id: ResourceRef | None = path("id", default=None)

        quoted = f'"{SAMPLE_ID}"'
        request = _make_request("GET", "/test/x", path_params={"id": quoted})
        result = await bind(request, Params)
        assert result.id is not None and result.id.value == SAMPLE_ID

    async def test_json_capability_with_bare_token(self) -> None:
        @dataclass
        class Params:
            id: ResourceRef | None = path("id", default=None)

        request = _make_request("GET", "/test/x", path_params={"id": SAMPLE_ID})
        result = await bind(request, Params)
        assert result.id is not None and result.id.value == SAMPLE_ID

    async def test_invalid(self) -> None:
        @dataclass
        class Params:
            id: int = path("id", default=0)

        request = _make_request("GET", "/test/invalid", path_params={"id": "invalid"})
        with pytest.raises(BindError) as exc_info:
            await bind(request, Params)
        assert isinstance(exc_info.value.error, FieldFormatError)
        assert exc_info.value.error.field == "id"

    async def test_other_parameter_name_is_absent(self) -> None:
        @dataclass
        class Params:
            slug: str = path("slug", default="none")

        request = _make_request("GET", "/test/1", path_params={"id": "1"})
        assert (await bind(request, Params)).slug == "none"

    async def test_empty_value_is_absent(self) -> None:
        @dataclass
        class Params:
            id: int = path("id", default=-1)

        request = _make_request("GET", "/test/", path_params={"id": ""})
        assert (await bind(request, Params)).id == -1

    async def test_no_parameter_table(self) -> None:
        @dataclass
        class Params:
            id: int = path("id", default=0)

        with pytest.raises(ConfigurationError, match="no path parameter"):
            await bind(_make_request("GET", "/test"), Params)


class TestForm:
    async def test_values(self) -> None:
        @dataclass
        class Params:
            field1: str = form("field1", default="")
            field2: int = form("field2", default=0)
            field3: str | None = form("field3", default=None)
            field4: str | None = form("field4", default=None)
            field5: str = form("field5", default="")

        request = _form_request(
            {"field1": "test", "field2": "123", "field4": "", "field5": "test\n\rtest"}
        )
        result = await bind(request, Params)
        assert result.field1 == "test"
        assert result.field2 == 123
        assert result.field3 is None
        assert result.field4 == ""
        assert result.field5 == "test\n\rtest"

    async def test_form_body_is_not_json_decoded(self) -> None:
        @dataclass
        class Params:
            name: str = body("name", default="")
            title: str = form("title", default="")

        result = await bind(_form_request({"title": "t", "name": "n"}), Params)
        assert result.name == ""
        assert result.title == "t"

    async def test_query_fills_keys_missing_from_body(self) -> None:
        @dataclass
        class Params:
            title: str = form("title", default="")
            page: int = form("page", default=0)

        request = _make_request(
            url="/?title=from-query&page=3",
            body=b"title=from-body",
            content_type="application/x-www-form-urlencoded",
        )
        result = await bind(request, Params)
        assert result.title == "from-body"
        assert result.page == 3

    async def test_malformed_body_fails_without_form_fields(self) -> None:
        @dataclass
        class Params:
            q: str = query("q", default="")

        request = _make_request(
            url="/?q=x", body=b"title=%zz", content_type="application/x-www-form-urlencoded"
        )
        with pytest.raises(BindError) as exc_info:
            await bind(request, Params)
        assert isinstance(exc_info.value.error, FormParseError)

    async def test_requires_form_request(self) -> None:
        @dataclass
        class Params:
            title: str = form("title", default="")

        with pytest.raises(ConfigurationError, match="form"):
            await bind(_json_request({"title": "x"}), Params)

    @pytest.mark.parametrize("raw", [b"title=%ff", b"title=%zz", b"title=\xff"])
    async def test_parse_failure(self, raw: bytes) -> None:
        @dataclass
        class Params:
            title: str = form("title", default="")

        with pytest.raises(BindError) as exc_info:
            await bind(_form_request(raw), Params)
        assert isinstance(exc_info.value.error, FormParseError)

    async def test_body_rereadable_after_form(self) -> None:
        @dataclass
        class Params:
            title: str = form("title", default="")

        request = _form_request(b"title=hello")
        await bind(request, Params)
        assert await request.body() == b"title=hello"


class TestBindErrorShape:
    async def test_message_and_chain(self) -> None:
        @dataclass
        class Params:
            n: int = query("n", default=0)

        with pytest.raises(BindError) as exc_info:
            await bind(_make_request("GET", "/?n=x"), Params)
        err = exc_info.value
        assert str(err).startswith("bind error: ")
        assert isinstance(err.__cause__, FieldFormatError)
        assert isinstance(err.__cause__.__cause__, ValueError)
