import pytest

from smart_qr_studio.contact import ContactCard, is_vcard, parse_vcard


def test_to_vcard() -> None:
    card = ContactCard(name="Ada Lovelace", organization="Analytical Engines", phone="+44 20 1234",
                       email="ada@example.com")
    text = card.to_vcard()
    lines = text.split("\r\n")
    assert lines[0] == "BEGIN:VCARD"
    assert lines[1] == "VERSION:3.0"
    assert "N:Lovelace;Ada;;;" in lines
    assert "FN:Ada Lovelace" in lines
    assert "TEL;TYPE=CELL:+44 20 1234" in lines
    assert lines[-1] == "END:VCARD"
    assert not any(line.startswith("TITLE") for line in lines)


def test_round_trip_with_special_characters() -> None:
    card = ContactCard(
        name="Grace Hopper",
        organization="Navy; Research, Lab",
        title="Rear Admiral",
        phone="555-0100",
        email="grace@example.com",
        url="https://example.com/grace",
        address="1 Main St, Arlington",
    )
    assert parse_vcard(card.to_vcard()) == card


def test_single_word_name() -> None:
    card = ContactCard(name="Cher")
    assert "N:;Cher;;;" in card.to_vcard()
    assert parse_vcard(card.to_vcard()).name == "Cher"


def test_parse_uses_structured_name_without_fn() -> None:
    text = "BEGIN:VCARD\nVERSION:3.0\nN:Turing;Alan;;;\nEND:VCARD"
    assert parse_vcard(text).name == "Alan Turing"


def test_parse_unfolds_continuation_lines() -> None:
    text = "BEGIN:VCARD\r\nFN:Ada\r\n  Lovelace\r\nEND:VCARD"
    assert parse_vcard(text).name == "Ada Lovelace"


def test_is_vcard() -> None:
    assert is_vcard("  begin:vcard\nEND:VCARD")
    assert not is_vcard("https://example.com")


def test_parse_rejects_other_content() -> None:
    with pytest.raises(ValueError):
        parse_vcard("https://example.com")


def test_is_empty() -> None:
    assert ContactCard().is_empty()
    assert ContactCard(name="  ").is_empty()
    assert not ContactCard(email="a@b.c").is_empty()
