import pytest

from domain.models import City
from services.answer_parser import (
    MAX_EXTRACTED_ENTRIES,
    calculate_confidence,
    extract_location_entries,
)

TWO_LANDMARKS = (
    "1. Marina Bay Sands | 10 Bayfront Avenue, Singapore 018956 | Iconic hotel with rooftop pool\n"
    "2. Gardens by the Bay | 18 Marina Gardens Drive, Singapore 018953 | Futuristic nature park"
)


def test_structured_answer_yields_named_entries_with_addresses():
    entries = extract_location_entries(TWO_LANDMARKS)

    assert [e.name for e in entries] == ["Marina Bay Sands", "Gardens by the Bay"]
    assert "10 Bayfront Avenue" in entries[0].search_query
    assert "18 Marina Gardens Drive" in entries[1].search_query
    assert entries[0].address == "10 Bayfront Avenue, Singapore 018956"
    assert entries[1].description == "Futuristic nature park"
    for entry in entries:
        assert entry.confidence > 0.5


def test_entries_are_capped_at_max():
    answer = "\n".join(
        f"{i}. Landmark Number {i} | {i} Orchard Road, Singapore 238{i:03d} | Shopping stop number {i}"
        for i in range(1, 51)
    )

    assert len(extract_location_entries(answer)) == MAX_EXTRACTED_ENTRIES
    assert len(extract_location_entries(answer, max_entries=5)) == 5


def test_bullet_items_are_split():
    answer = (
        "• Merlion Park | 1 Fullerton Road, Singapore 049213 | Statue at the bay\n"
        "- Raffles Hotel | 1 Beach Road, Singapore 189673 | Colonial era luxury hotel"
    )

    names = [e.name for e in extract_location_entries(answer)]
    assert names == ["Merlion Park", "Raffles Hotel"]


def test_short_structured_names_are_rejected():
    answer = "1. AB | 5 Some Road | too short a name\n2. Chinatown | Pagoda Street | Heritage shophouses"

    names = [e.name for e in extract_location_entries(answer)]
    assert names == ["Chinatown"]


def test_markdown_and_citations_are_stripped():
    answer = (
        "1. **Marina Bay Sands** [1] | 10 Bayfront Avenue, Singapore 018956 | "
        "_Iconic_ hotel (https://example.com/mbs) with a rooftop pool [2]"
    )

    entry = extract_location_entries(answer)[0]
    assert entry.name == "Marina Bay Sands"
    assert entry.description == "Iconic hotel with a rooftop pool"


def test_unstructured_line_falls_back_to_heuristics():
    answer = "1. Haw Par Villa, located at 262 Pasir Panjang Road: quirky theme park of Chinese myths"

    entries = extract_location_entries(answer)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.name == "Haw Par Villa"
    assert "Pasir Panjang Road" in entry.address
    assert entry.description == "quirky theme park of Chinese myths"
    assert entry.search_query.endswith(", Singapore")


def test_unstructured_stop_word_names_are_rejected():
    answer = "1. Singapore, a city with many landmarks to see\n2. The, best of all"

    assert extract_location_entries(answer) == []


def test_unstructured_without_address_uses_city_label():
    answer = "1. Kota Tua - old Batavia square with colonial museums"

    entry = extract_location_entries(answer, city=City.JAKARTA)[0]
    assert entry.name == "Kota Tua"
    assert entry.address == "Jakarta"
    assert entry.search_query == "Kota Tua, Jakarta, Jakarta"


def test_empty_answer_returns_nothing():
    assert extract_location_entries("") == []
    assert extract_location_entries(TWO_LANDMARKS, max_entries=0) == []


@pytest.mark.parametrize(
    "name,query,description",
    [
        ("", "", ""),
        ("unknown", "unknown", ""),
        ("Singapore", "Singapore", "x"),
        ("Marina Bay Sands", "Marina Bay Sands, 10 Bayfront Avenue 018956", "A" * 50),
        ("n/a", "123456 1 Road 654321", "A" * 500),
    ],
)
def test_confidence_stays_in_bounds(name, query, description):
    score = calculate_confidence(name, query, description)
    assert 0.0 <= score <= 1.0


def test_confidence_rewards_address_and_penalizes_generic_names():
    rich = calculate_confidence(
        "Marina Bay Sands",
        "Marina Bay Sands, 10 Bayfront Avenue, Singapore 018956",
        "Iconic hotel with rooftop pool",
    )
    generic = calculate_confidence("unknown", "unknown", "")

    assert rich == pytest.approx(1.0)
    # 0.5 + 0.05 (three chars, not a placeholder) - 0.3 - 0.2
    assert generic == pytest.approx(0.05)


def test_confidence_without_address_or_description():
    # 0.5 + 0.05 - 0.2 for a short description
    assert calculate_confidence("Chinatown", "Chinatown", "") == pytest.approx(0.35)


def test_preamble_before_list_is_not_an_entry():
    answer = "Here are some landmarks in Singapore:\n" + TWO_LANDMARKS

    names = [e.name for e in extract_location_entries(answer)]
    assert names == ["Marina Bay Sands", "Gardens by the Bay"]


def test_single_unlisted_line_is_still_parsed():
    answer = "Raffles Hotel | 1 Beach Road, Singapore 189673 | Colonial luxury hotel"

    assert [e.name for e in extract_location_entries(answer)] == ["Raffles Hotel"]


def test_unstructured_description_can_span_lines():
    answer = "1. Haw Par Villa, 262 Pasir Panjang Road: theme park\n   of Chinese myths and legends"

    entry = extract_location_entries(answer)[0]
    assert entry.name == "Haw Par Villa"
    assert entry.description == "theme park of Chinese myths and legends"
