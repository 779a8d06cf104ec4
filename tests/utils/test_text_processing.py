from community_calendar.utils.text_processing import (
    find_image_urls,
    normalize_title,
    replace_google_tracking_urls,
    strip_html,
    titles_related,
    truncate,
    unique_preserving_order,
)


def test_image_urls_are_found_once_in_order():
    text = (
        '<img src="https://example.org/a.PNG"> and https://example.org/b.jpg?size=large '
        "again https://example.org/a.PNG"
    )
    assert find_image_urls(text) == ["https://example.org/a.PNG", "https://example.org/b.jpg"]
    assert find_image_urls(None) == []


def test_imgur_page_links_become_direct_links():
    assert find_image_urls("flyer: https://imgur.com/abc123.jpg") == ["https://i.imgur.com/abc123.jpg"]


def test_google_tracking_links_are_unwrapped():
    html = '<a href="https://www.google.com/url?q=https%3A%2F%2Ftickets.example.org%2Fshow&sa=D&ust=1" target="_blank">Tickets</a>'
    assert replace_google_tracking_urls(html) == '<a href="https://tickets.example.org/show" target="_blank">Tickets</a>'


def test_title_relations():
    assert normalize_title("Fall Market @ Main St.") == "fallmarketmainst"
    assert titles_related("Fall Market", "Fall Market at Main St")
    assert not titles_related("Fall Market", "Spring Market")
    assert not titles_related("", "Anything")


def test_small_helpers():
    assert strip_html("<b>Bold</b> move") == "Bold move"
    assert unique_preserving_order(["a", None, "b", "a", ""]) == ["a", "b"]
    assert truncate("abcdef", 3) == "abc..."
    assert truncate("abc", 3) == "abc"
