from src.translation.text import clean_swedish_content, fit_to_limit, strip_preamble


def test_strip_preamble_removes_first_known_prefix_case_insensitively() -> None:
    assert strip_preamble("  here is the swedish linkedin post:\n\nHej!  ") == "Hej!"
    assert strip_preamble("Här är LinkedIn-inlägget på svenska: Hej") == "Hej"
    assert strip_preamble("Swedish translation: Swedish translation: Hej") == "Swedish translation: Hej"


def test_strip_preamble_keeps_unprefixed_text() -> None:
    assert strip_preamble("Hej där, du!") == "Hej där, du!"
    assert strip_preamble("") == ""


def test_fit_to_limit_leaves_short_text_alone() -> None:
    text = "Kort text."
    assert fit_to_limit(text) == text
    assert fit_to_limit("a" * 3000) == "a" * 3000


def test_fit_to_limit_cuts_at_late_sentence_boundary() -> None:
    text = "a" * 2700 + ". " + "b" * 1000

    result = fit_to_limit(text)

    assert result == "a" * 2700 + "."
    assert len(result) <= 3000


def test_fit_to_limit_appends_ellipsis_without_late_boundary() -> None:
    text = "a" * 100 + ". " + "b" * 4000

    result = fit_to_limit(text)

    assert result.endswith("...")
    assert len(result) == 2993
    assert len(result) <= 3000


def test_fit_to_limit_ignores_boundary_at_floor() -> None:
    text = "a" * 2500 + "!" + "b" * 1000

    assert fit_to_limit(text).endswith("...")


def test_clean_swedish_content_combines_both_steps() -> None:
    raw = "Swedish LinkedIn post: " + "Mening. " * 500

    result = clean_swedish_content(raw)

    assert not result.startswith("Swedish")
    assert len(result) <= 3000
    assert result.endswith(".")
