import pytest

from hellofn.query import ParsedQuery, ValidationFailure, parse_query


def _ok(**raw) -> ParsedQuery:
    result = parse_query({"name": "Ada", **raw})
    assert result.success, result.error and result.error.message
    assert result.error is None
    return result.data


def _fail(raw: dict) -> ValidationFailure:
    result = parse_query(raw)
    assert not result.success
    assert result.data is None
    return result.error


def test_name_only():
    data = _ok()
    assert data.name == "Ada"
    assert data.many is None
    assert data.string is None
    assert data.pos_number is None
    assert data.range is None
    assert data.plain_date is None
    assert data.to_wire() == {"name": "Ada"}


@pytest.mark.parametrize("raw", [{}, {"name": ""}, {"posNumber": "3"}])
def test_missing_or_empty_name_fails(raw):
    error = _fail(raw)
    assert "name" in error.fields
    assert '"name"' in error.message


def test_missing_name_reason():
    error = _fail({})
    assert error.message == 'Validation error: Field required at "name"'


def test_many_is_split_and_trimmed():
    assert _ok(many="a, b ,c").many == ["a", "b", "c"]


def test_many_keeps_order_and_duplicates():
    assert _ok(many="z,a,z").many == ["z", "a", "z"]
    assert _ok(many="solo").many == ["solo"]


def test_many_empty_fails():
    error = _fail({"name": "Ada", "many": ""})
    assert error.fields == ["many"]
    assert "at least 1 character" in error.message


def test_string_field():
    assert _ok(string="text").string == "text"
    assert _fail({"name": "Ada", "string": ""}).fields == ["string"]


@pytest.mark.parametrize("raw", ["-1", "0", "abc", ""])
def test_pos_number_rejects(raw):
    error = _fail({"name": "Ada", "posNumber": raw})
    assert error.fields == ["posNumber"]


def test_pos_number_reasons():
    assert "greater than 0" in _fail({"name": "Ada", "posNumber": "0"}).message
    assert "valid number" in _fail({"name": "Ada", "posNumber": "abc"}).message


@pytest.mark.parametrize("field, raw", [("range", " "), ("posNumber", "0x10"), ("posNumber", "Infinity"), ("range", "NaN")])
def test_numbers_must_be_finite_decimal_text(field, raw):
    assert _fail({"name": "Ada", field: raw}).fields == [field]


@pytest.mark.parametrize("raw, expected", [("1", 1), ("3.5", 3.5)])
def test_pos_number_accepts(raw, expected):
    assert _ok(posNumber=raw).pos_number == expected


@pytest.mark.parametrize("raw", ["-1", "6", "5.01", "x"])
def test_range_rejects(raw):
    assert _fail({"name": "Ada", "range": raw}).fields == ["range"]


@pytest.mark.parametrize("raw, expected", [("0", 0), ("5", 5), ("2.5", 2.5)])
def test_range_accepts(raw, expected):
    assert _ok(range=raw).range == expected


@pytest.mark.parametrize("raw", ["2024-01-01", "prefix2024-01-01suffix", "9999-99-99"])
def test_plain_date_accepts_any_embedded_pattern(raw):
    assert _ok(plainDate=raw).plain_date == raw


@pytest.mark.parametrize("raw", ["not-a-date", "2024-1-01"])
def test_plain_date_rejects(raw):
    error = _fail({"name": "Ada", "plainDate": raw})
    assert error.fields == ["plainDate"]
    assert f"Invalid plain date: {raw}" in error.message


def test_plain_date_digits_are_ascii_only():
    # Arabic-Indic and fullwidth digits do not count
    assert _fail({"name": "Ada", "plainDate": "\u0662\u0660\u0662\u0664-\u0660\u0661-\u0660\u0661"}).fields == ["plainDate"]
    assert _fail({"name": "Ada", "plainDate": "\uff12\uff10\uff12\uff14-\uff10\uff11-\uff10\uff11"}).fields == ["plainDate"]
    assert _ok(plainDate="\u0662\u0660 2024-01-01").plain_date == "\u0662\u0660 2024-01-01"


def test_all_issues_are_collected():
    error = _fail({"posNumber": "0", "range": "6", "plainDate": "nope"})
    assert error.fields == ["name", "posNumber", "range", "plainDate"]
    assert error.message.startswith("Validation error: ")
    assert error.message.count(' at "') == 4


def test_optional_fields_are_independent():
    error = _fail({"name": "Ada", "range": "9", "many": "a,b", "posNumber": "2"})
    assert error.fields == ["range"]


def test_unknown_and_python_names_are_ignored():
    data = _ok(extra="1", pos_number="-5", plain_date="junk")
    assert data.pos_number is None
    assert data.plain_date is None


def test_to_wire_uses_query_names():
    data = _ok(many="a,b", posNumber="2", plainDate="2024-02-03", range="1")
    assert data.to_wire() == {
        "name": "Ada",
        "many": ["a", "b"],
        "posNumber": 2.0,
        "range": 1.0,
        "plainDate": "2024-02-03",
    }


def test_parsing_is_repeatable():
    raw = {"name": "Ada", "many": "a,b"}
    assert parse_query(raw) == parse_query(raw)
    assert raw == {"name": "Ada", "many": "a,b"}
