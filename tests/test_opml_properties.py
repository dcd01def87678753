"""Property-based tests for OPML generation and parsing."""

from hypothesis import given
from hypothesis import strategies as st

from feedstream.models import OpmlSubscription
from feedstream.opml import generate_opml, parse_opml

label_text = st.text(
    alphabet=st.characters(
        whitelist_categories=("Lu", "Ll", "Nd"),
        whitelist_characters=" &<>'\"-.",
    ),
    min_size=1,
    max_size=30,
).filter(lambda x: x.strip() == x and x)

folders = st.one_of(st.none(), st.sampled_from(["News", "Tech & Science", "Blogs"]))


@st.composite
def subscription_lists(draw):
    entries = draw(st.lists(st.tuples(label_text, folders), min_size=0, max_size=12))
    return [
        OpmlSubscription(
            title=title,
            xml_url=f"https://example.com/feed/{index}?a=1&b=2",
            folder=folder,
        )
        for index, (title, folder) in enumerate(entries)
    ]


class TestOpmlRoundTripProperties:
    """Property-based tests for generate/parse round trips."""

    @given(subscription_lists())
    def test_round_trip_keeps_titles_urls_and_folders(self, subscriptions):
        """Parsing generated OPML returns every subscription with its folder."""
        feeds = parse_opml(generate_opml(subscriptions))

        expected = sorted(
            (sub.xml_url, sub.title, (sub.folder,) if sub.folder else None)
            for sub in subscriptions
        )
        actual = sorted((feed.xml_url, feed.title, feed.category) for feed in feeds)
        assert actual == expected

    @given(subscription_lists())
    def test_generation_is_deterministic_apart_from_date(self, subscriptions):
        """Two exports of the same list differ at most in dateCreated."""

        def without_date(document):
            return [line for line in document.splitlines() if "<dateCreated>" not in line]

        assert without_date(generate_opml(subscriptions)) == without_date(
            generate_opml(subscriptions)
        )

    @given(st.lists(st.sets(st.sampled_from(["a", "b", "c"]), max_size=3), min_size=1, max_size=6))
    def test_tag_fan_out_count(self, tag_sets):
        """Each feed appears once at top level plus once per distinct tag."""
        subscriptions = [
            OpmlSubscription(title=f"T{index}", xml_url=f"https://x/{index}", tags=tuple(tags))
            for index, tags in enumerate(tag_sets)
        ]

        feeds = parse_opml(generate_opml(subscriptions))

        assert len(feeds) == len(subscriptions) + sum(len(tags) for tags in tag_sets)
        assert [feed.category for feed in feeds[: len(subscriptions)]] == [None] * len(
            subscriptions
        )
