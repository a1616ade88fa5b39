# tests/test_rss.py
"""
RSS pipeline tests
Tests: feed parsing, vulnerability classification, fetch/dedupe/error recording
"""

import pytest
import httpx
from datetime import datetime, timezone
from sqlalchemy import func, select

from secdash.core.config import settings
from secdash.core.constants import SeverityLevel
from secdash.db.models import RssFeed, RssItem
from secdash.rss import ClassifierConfig, RssService, VulnerabilityClassifier, parse_feed

RSS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Security News</title>
    <item>
      <title>Critical RCE in Apache</title>
      <link>https://news.test/apache-rce</link>
      <description>CVE-2024-1234 CVSS: 9.8 affects Apache HTTP Server 2.4</description>
      <pubDate>Tue, 24 Dec 2024 10:00:00 GMT</pubDate>
      <author>sec@news.test</author>
      <category>Vulnerabilities</category>
    </item>
    <item>
      <title>Entry without a link</title>
      <description>dropped</description>
    </item>
  </channel>
</rss>
"""

ATOM_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom News</title>
  <id>urn:atom-news</id>
  <updated>2024-12-20T08:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="https://news.test/atom/1"/>
    <id>urn:atom-news:1</id>
    <updated>2024-12-20T08:00:00Z</updated>
    <published>2024-12-19T08:00:00Z</published>
    <content type="text">Body text</content>
    <author><name>Jane Analyst</name></author>
    <category term="News"/>
  </entry>
</feed>
"""


def rss_document(*links: str) -> bytes:
    items = "".join(
        f"<item><title>Advisory {i}</title><link>{link}</link><description>Details</description></item>"
        for i, link in enumerate(links)
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>T</title>{items}</channel></rss>'.encode()


async def add_feed(session, url: str, name: str = "Feed", active: bool = True) -> RssFeed:
    feed = RssFeed(name=name, url=url, category="News", active=active)
    session.add(feed)
    await session.commit()
    await session.refresh(feed)
    return feed


async def count_items(session) -> int:
    return await session.scalar(select(func.count()).select_from(RssItem))


class TestFeedParser:
    """Test RSS and Atom extraction"""

    def test_rss_entry_fields(self):
        entries = parse_feed(RSS_XML)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.title == "Critical RCE in Apache"
        assert entry.link == "https://news.test/apache-rce"
        assert entry.description.startswith("CVE-2024-1234")
        assert entry.pub_date == datetime(2024, 12, 24, 10, 0, tzinfo=timezone.utc)
        assert entry.author == "sec@news.test"
        assert entry.category == "Vulnerabilities"

    def test_atom_entry_prefers_updated_and_content(self):
        entries = parse_feed(ATOM_XML)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.link == "https://news.test/atom/1"
        assert entry.description == "Body text"
        assert entry.pub_date == datetime(2024, 12, 20, 8, 0, tzinfo=timezone.utc)
        assert entry.author == "Jane Analyst"
        assert entry.category == "News"

    def test_accepts_text(self):
        assert len(parse_feed(RSS_XML.decode())) == 1

    def test_malformed_document_yields_no_entries(self):
        assert parse_feed(b"<rss><channel><item><title>cut off") == []
        assert parse_feed("not xml at all") == []


class TestVulnerabilityClassifier:
    """Test severity, tags, CVEs and products"""

    def setup_method(self):
        self.classifier = VulnerabilityClassifier()

    def test_cvss_overrides_keywords(self):
        result = self.classifier.classify("Patch released", "CVSS: 9.5 low impact")

        assert result.cvss == 9.5
        assert result.severity == "CRITICAL"
        assert "CVSS" in result.tags

    def test_cvss_thresholds(self):
        assert self.classifier.classify("Advisory", "CVSS 7.2").severity == "HIGH"
        assert self.classifier.classify("Advisory", "CVSS score: 5.0").severity == "MEDIUM"
        assert self.classifier.classify("Advisory", "CVSS 0.5").severity == "LOW"

    def test_zero_day_is_critical(self):
        result = self.classifier.classify("Zero-day in Chrome")

        assert "Zero-Day" in result.tags
        assert result.severity == "CRITICAL"
        assert "Chrome" in result.affected_products

    def test_cve_count(self):
        many = self.classifier.classify(
            "Fixes CVE-2024-0001, cve-2024-0002 and CVE-2024-0003", "CVE-2024-0001 again"
        )
        assert many.cves == ["CVE-2024-0001", "CVE-2024-0002", "CVE-2024-0003"]
        assert many.severity == "HIGH"
        assert "CVE" in many.tags

        one = self.classifier.classify("Bug CVE-2024-9999 noted")
        assert one.severity == "MEDIUM"

    def test_keyword_fallback(self):
        assert self.classifier.classify("Emergency maintenance window").severity == "CRITICAL"
        assert self.classifier.classify("Weekly newsletter").severity == "INFO"

    def test_tags_are_independent(self):
        result = self.classifier.classify("Ransomware gang uses phishing", "Cloud malware campaign")

        assert {"Ransomware", "Phishing", "Cloud", "Malware"} <= set(result.tags)

    def test_affected_products(self):
        result = self.classifier.classify("Vulnerability affects OpenSSL 3.0, fixed")
        assert "OpenSSL 3" in result.affected_products

    def test_custom_config(self):
        config = ClassifierConfig(severity_keywords=((SeverityLevel.HIGH, ("newsletter",)),))
        classifier = VulnerabilityClassifier(config)

        assert classifier.classify("Weekly newsletter").severity == "HIGH"


class TestRssService:
    """Test fetching, deduplication and error recording"""

    @pytest.mark.asyncio
    async def test_fetch_stores_new_items_once(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/sec.xml")
        feed_responses[feed.url] = lambda request: httpx.Response(200, content=RSS_XML)
        service = RssService(db_session, http_client)

        first = await service.fetch_and_parse_feed(feed.id)
        second = await service.fetch_and_parse_feed(feed.id)

        assert first.success and first.count == 1
        assert second.success and second.count == 0
        assert await count_items(db_session) == 1

        item = await db_session.scalar(select(RssItem))
        assert item.severity == "CRITICAL"
        assert item.cves == ["CVE-2024-1234"]
        assert item.cvss_score == 9.8
        assert item.feed_id == feed.id

        await db_session.refresh(feed)
        assert feed.last_fetched is not None
        assert feed.fetch_error is None

    @pytest.mark.asyncio
    async def test_duplicate_links_in_one_document(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/dupes.xml")
        document = rss_document("https://news.test/same", "https://news.test/same")
        feed_responses[feed.url] = lambda request: httpx.Response(200, content=document)

        result = await RssService(db_session, http_client).fetch_and_parse_feed(feed.id)

        assert result.count == 1
        assert await count_items(db_session) == 1

    @pytest.mark.asyncio
    async def test_request_headers(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/headers.xml")
        seen = {}

        def respond(request):
            seen.update(request.headers)
            return httpx.Response(200, content=rss_document())

        feed_responses[feed.url] = respond
        await RssService(db_session, http_client).fetch_and_parse_feed(feed.id)

        assert seen["user-agent"] == settings.RSS_USER_AGENT
        assert "application/rss+xml" in seen["accept"]

    @pytest.mark.asyncio
    async def test_http_error_is_recorded_on_feed(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/down.xml")
        feed_responses[feed.url] = lambda request: httpx.Response(503)

        result = await RssService(db_session, http_client).fetch_and_parse_feed(feed.id)

        assert not result.success
        assert result.error == "HTTP 503: Service Unavailable"
        await db_session.refresh(feed)
        assert feed.fetch_error == "HTTP 503: Service Unavailable"
        assert feed.last_fetched is not None

    @pytest.mark.asyncio
    async def test_network_error_is_recorded(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/unreachable.xml")

        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        feed_responses[feed.url] = fail
        result = await RssService(db_session, http_client).fetch_and_parse_feed(feed.id)

        assert not result.success
        assert result.error == "connection refused"

    @pytest.mark.asyncio
    async def test_success_clears_previous_error(self, db_session, http_client, feed_responses):
        feed = await add_feed(db_session, "https://feeds.test/flaky.xml")
        url = feed.url
        service = RssService(db_session, http_client)

        feed_responses[url] = lambda request: httpx.Response(500)
        await service.fetch_and_parse_feed(feed.id)
        feed_responses[url] = lambda request: httpx.Response(200, content=RSS_XML)
        await service.fetch_and_parse_feed(feed.id)

        await db_session.refresh(feed)
        assert feed.fetch_error is None

    @pytest.mark.asyncio
    async def test_missing_or_inactive_feed(self, db_session, http_client):
        feed = await add_feed(db_session, "https://feeds.test/off.xml", active=False)
        service = RssService(db_session, http_client)

        for feed_id in (feed.id, "does-not-exist"):
            result = await service.fetch_and_parse_feed(feed_id)
            assert not result.success
            assert result.error == "RSS feed not found or inactive"

        await db_session.refresh(feed)
        assert feed.last_fetched is None

    @pytest.mark.asyncio
    async def test_fetch_all_isolates_failures(
        self, db_session, session_factory, http_client, feed_responses, monkeypatch
    ):
        monkeypatch.setattr(settings, "RSS_BATCH_SIZE", 2)
        good_a = await add_feed(db_session, "https://feeds.test/a.xml", "A")
        broken = await add_feed(db_session, "https://feeds.test/b.xml", "B")
        good_c = await add_feed(db_session, "https://feeds.test/c.xml", "C")
        await add_feed(db_session, "https://feeds.test/off.xml", "D", active=False)

        feed_responses[good_a.url] = lambda request: httpx.Response(200, content=rss_document("https://news.test/a1"))
        feed_responses[broken.url] = lambda request: httpx.Response(500)
        feed_responses[good_c.url] = lambda request: httpx.Response(
            200, content=rss_document("https://news.test/c1", "https://news.test/c2")
        )

        service = RssService(db_session, http_client, session_factory=session_factory)
        result = await service.fetch_all_active_feeds()

        assert result.total == 3
        assert result.successful == 2
        assert result.failed == 1
        failed = [detail for detail in result.details if not detail["success"]]
        assert failed[0]["feed_id"] == broken.id
        assert failed[0]["error"] == "HTTP 500: Internal Server Error"
        assert await count_items(db_session) == 3

    @pytest.mark.asyncio
    async def test_fetch_all_without_session_factory(self, db_session, http_client, feed_responses, monkeypatch):
        """Several feeds in one batch share a single session without interfering"""
        monkeypatch.setattr(settings, "RSS_BATCH_SIZE", 5)
        feeds = []
        for n in range(4):
            feed = await add_feed(db_session, f"https://feeds.test/shared-{n}.xml", f"Feed {n}")
            document = rss_document(f"https://news.test/shared-{n}")
            feed_responses[feed.url] = lambda request, document=document: httpx.Response(200, content=document)
            feeds.append(feed)

        result = await RssService(db_session, http_client).fetch_all_active_feeds()

        assert result.total == 4
        assert result.successful == 4
        assert result.failed == 0
        assert [detail["count"] for detail in result.details] == [1, 1, 1, 1]
        assert await count_items(db_session) == 4
        for feed in feeds:
            await db_session.refresh(feed)
            assert feed.last_fetched is not None
            assert feed.fetch_error is None

    @pytest.mark.asyncio
    async def test_invalid_feed_url_is_recorded(self, db_session, http_client):
        feed = await add_feed(db_session, "https://feeds.test/fe\x01ed.xml")

        result = await RssService(db_session, http_client).fetch_and_parse_feed(feed.id)

        assert not result.success
        assert "URL" in result.error
        await db_session.refresh(feed)
        assert feed.fetch_error == result.error
        assert feed.last_fetched is not None

    @pytest.mark.asyncio
    async def test_unexpected_processing_error_is_recorded(self, db_session, http_client, feed_responses):
        class BrokenClassifier(VulnerabilityClassifier):
            def classify(self, title, description):
                raise ValueError("classifier exploded")

        feed = await add_feed(db_session, "https://feeds.test/odd.xml")
        feed_responses[feed.url] = lambda request: httpx.Response(200, content=RSS_XML)

        result = await RssService(db_session, http_client, BrokenClassifier()).fetch_and_parse_feed(feed.id)

        assert not result.success
        assert result.error == "classifier exploded"
        assert await count_items(db_session) == 0
        await db_session.refresh(feed)
        assert feed.fetch_error == "classifier exploded"
        assert feed.last_fetched is not None

    @pytest.mark.asyncio
    async def test_import_feed_list(self, db_session):
        content = (
            b"Category,RSS URL,Name\n"
            b"News,https://a.test/rss,\n"
            b"News,https://a.test/rss,Duplicate\n"
            b",https://b.test/rss,Missing category\n"
            b"Vendors,https://c.test/feed.xml,Vendor C\n"
        )
        result = await RssService(db_session).import_feed_list(content)

        assert result.successful == 2
        assert result.errors == [
            "Row 2: RSS feed already exists: https://a.test/rss",
            "Row 3: Missing category or URL",
        ]
        feed = await db_session.scalar(select(RssFeed).where(RssFeed.url == "https://a.test/rss"))
        assert feed.name == "a.test"
        assert feed.active is True


class TestRefreshTask:
    """Test the scheduled refresh"""

    def test_beat_schedule(self):
        from secdash.workers.celery_app import celery_app

        entry = celery_app.conf.beat_schedule["refresh-rss-feeds"]
        assert entry["task"] == "refresh_rss_feeds"
        assert entry["schedule"] == settings.RSS_REFRESH_INTERVAL_HOURS * 3600

    @pytest.mark.asyncio
    async def test_refresh_with_no_active_feeds(self, session_factory):
        from secdash.workers.rss_worker import _refresh_rss_feeds_async

        result = await _refresh_rss_feeds_async(session_factory)

        assert result == {"total": 0, "successful": 0, "failed": 0}
