import pytest

from plate_reader.extractor import (
    DIGIT_TO_LETTER,
    LETTER_TO_DIGIT,
    PLATE_FOUND_MESSAGE,
    PLATE_NOT_FOUND_MESSAGE,
    Token,
    correct_candidate,
    derive_candidate,
    extract_plate,
    iter_candidates,
    matches_pattern,
    tokenize,
)


def test_extract_plate_direct_match():
    result = extract_plate("MERCOSUL ABC1D23 BRASIL")
    assert result.plate == "ABC1D23"
    assert result.found
    assert result.message == PLATE_FOUND_MESSAGE


def test_extract_plate_uses_last_seven_characters_of_long_token():
    assert extract_plate("ZABC1D23").plate == "ABC1D23"


def test_extract_plate_long_token_without_plate_suffix():
    assert extract_plate("XABC1D234").plate is None


def test_extract_plate_corrects_digit_in_letter_position():
    assert extract_plate("AB05D21").plate == "ABO5D21"


def test_extract_plate_corrects_letters_in_digit_positions():
    assert extract_plate("ABCID2S").plate == "ABC1D25"


def test_extract_plate_without_plate():
    result = extract_plate("12345 !!!! no plate here")
    assert result.plate is None
    assert not result.found
    assert result.message == PLATE_NOT_FOUND_MESSAGE


def test_extract_plate_returns_first_plate_in_document_order():
    assert extract_plate("ZZZ NOPE ABC1D23 DEF4G56").plate == "ABC1D23"


def test_extract_plate_handles_multiline_noise():
    text = "BRASIL\n  MERCOSUL\t\n\nabc-1d23 ??\n"
    assert extract_plate(text).plate == "ABC1D23"


@pytest.mark.parametrize("text", ["", "   \n\t ", "AB12", "çãõ ñ ☃ 日本語", "A-B-C-1"])
def test_extract_plate_absent_for_inputs_without_candidates(text):
    result = extract_plate(text)
    assert result.plate is None
    assert result.message == PLATE_NOT_FOUND_MESSAGE


def test_extract_plate_leaves_unmapped_digits_alone():
    # '4' has no letter counterpart, so the candidate cannot be repaired.
    assert extract_plate("AB41D23").plate is None


@pytest.mark.parametrize(
    "text",
    ["MERCOSUL ABC1D23 BRASIL", "AB05D21", "ZABC1D23", "8RA2I0S", "ABCID2S"],
)
def test_extract_plate_result_is_stable_when_fed_back(text):
    plate = extract_plate(text).plate
    assert plate is not None
    assert len(plate) == 7
    assert plate[:3].isalpha() and plate[:3].isupper()
    assert plate[3].isdigit()
    assert plate[4].isalpha() and plate[4].isupper()
    assert plate[5:].isdigit()
    assert extract_plate(plate).plate == plate


def test_tokenize_preserves_order_and_original_form():
    tokens = tokenize("abc  def\nGhi")
    assert [t.normalized for t in tokens] == ["ABC", "DEF", "GHI"]
    assert [t.original for t in tokens] == ["abc", "def", "Ghi"]


def test_tokenize_empty_text():
    assert tokenize("") == []


def test_derive_candidate_strips_noise():
    assert derive_candidate(Token("abc-1d23", "ABC-1D23")) == "ABC1D23"


def test_derive_candidate_short_token():
    assert derive_candidate(Token("ab1", "AB1")) is None


def test_iter_candidates_skips_short_tokens():
    candidates = [candidate for _token, candidate in iter_candidates("AB1 ABC1D23 XYZ ZZABC1D23")]
    assert candidates == ["ABC1D23", "ABC1D23"]


@pytest.mark.parametrize(
    "candidate, expected",
    [
        ("ABC1D23", True),
        ("abc1d23", False),
        ("ABC1234", False),
        ("ABC1D2", False),
        ("ABC1D234", False),
        ("", False),
    ],
)
def test_matches_pattern(candidate, expected):
    assert matches_pattern(candidate) is expected


def test_correct_candidate_maps_each_position_to_expected_class():
    assert correct_candidate("012S8ZO") == "OIZ5B20"


def test_correct_candidate_is_idempotent():
    for candidate in ["012S8ZO", "AB05D21", "4B7Q9XY", "ABC1D23"]:
        once = correct_candidate(candidate)
        assert correct_candidate(once) == once


def test_correction_tables_are_inverse_and_read_only():
    assert {v: k for k, v in DIGIT_TO_LETTER.items()} == dict(LETTER_TO_DIGIT)
    with pytest.raises(TypeError):
        DIGIT_TO_LETTER["4"] = "A"


def test_tokenize_splits_on_byte_order_mark():
    tokens = tokenize("ABC1D23\ufeffXYZ")
    assert [t.normalized for t in tokens] == ["ABC1D23", "XYZ"]
    assert extract_plate("BRASIL\ufeffABC1D23\ufeffXYZ").plate == "ABC1D23"
