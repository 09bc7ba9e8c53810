"""
Test fixtures shared across all PageLens tests.
"""

import pytest

from pagelens.config import Settings
from pagelens.core.document import Document, FetchResult
from pagelens.llm.gateway import LLMGateway
from pagelens.llm.providers import LLMProvider
from pagelens.models.issue_models import Category, Issue, Severity
from pagelens.models.llm_models import LLMResponse, LLMUsage
from pagelens.models.rule_models import ResponseMeta
from pagelens.models.scan_models import ProviderConfig, ProviderKind

# Distinctive fragments of each task's system prompt, used to route scripted answers.
SUMMARY = "expert content analyzer"
QUESTIONS = "what questions users might have"
CLAIMS = "You are a fact checker"
ENTITIES = "named entity recognition"
FAQS = "creating helpful FAQ sections"
MIRROR = "understanding product messaging"


class FakeProvider(LLMProvider):
    """Returns scripted answers (or raises scripted errors) keyed by a prompt fragment."""

    name = "fake"

    def __init__(self, routes=None, default="{}"):
        super().__init__(ProviderConfig(kind=ProviderKind.LOCAL, base_url="http://fake.local"), Settings())
        self.routes = routes or {}
        self.default = default
        self.calls = []

    async def call(self, messages, overrides=None):
        prompt = "\n".join(m.content for m in messages)
        self.calls.append((prompt, overrides))
        answer = self.default
        for fragment, scripted in self.routes.items():
            if fragment in prompt:
                answer = scripted
                break
        if isinstance(answer, Exception):
            raise answer
        return LLMResponse(content=answer, usage=LLMUsage(total_tokens=10), model="fake-model")


@pytest.fixture
def make_gateway():
    """Factory: gateway over a FakeProvider with the given routes."""

    def _make(routes=None, default="{}", max_retries=1):
        return LLMGateway(FakeProvider(routes, default), max_retries=max_retries, settings=Settings())

    return _make


@pytest.fixture
def make_fetcher():
    """Factory: async fetcher returning fixed HTML / status, or raising."""

    def _make(html="", status=200, headers=None, error=None):
        async def fetcher(url, timeout, user_agent):
            if error is not None:
                return FetchResult(url=url, error=error)
            meta = ResponseMeta(
                status_code=status,
                headers=headers or {"content-type": "text/html"},
                final_url=url,
                content_type="text/html",
            )
            return FetchResult(url=url, html=html, response=meta)

        return fetcher

    return _make


@pytest.fixture
def make_issue():
    def _make(id="TEST-001", severity=Severity.MEDIUM, category=Category.AIREAD, impact=10, confidence=1.0):
        return Issue(
            id=id,
            title=f"Test issue {id}",
            severity=severity,
            category=category,
            impact_score=impact,
            confidence=confidence,
        )

    return _make


@pytest.fixture
def article_html():
    """A well-structured product page: headings, canonical, JSON-LD, landmarks."""
    return """<!DOCTYPE html>
<html lang="en">
<head>
  <title>CloudMaster Pro - Cloud Monitoring for Teams</title>
  <meta name="description" content="CloudMaster Pro monitors cloud infrastructure and alerts engineering teams before outages happen.">
  <meta property="og:title" content="CloudMaster Pro">
  <link rel="canonical" href="https://example.com/product">
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "Organization", "name": "TechCorp Inc",
   "email": "sales@techcorp.example", "telephone": "+1-555-010-2000"}
  </script>
  <script type="application/ld+json">
  {"@context": "https://schema.org", "@type": "Product", "name": "CloudMaster Pro",
   "offers": {"@type": "Offer", "price": "49", "priceCurrency": "USD"}}
  </script>
</head>
<body>
  <header><nav aria-label="Main"><a href="/">Home</a> <a href="/pricing">Pricing</a></nav></header>
  <main>
    <section class="hero">
      <h1>CloudMaster Pro</h1>
      <p>CloudMaster Pro monitors cloud infrastructure and alerts engineering teams before outages happen.</p>
    </section>
    <h2 id="features">What does CloudMaster Pro do?</h2>
    <p>It collects metrics from every server, container and managed database, then highlights anomalies in real time.</p>
    <div class="features">Real-time anomaly detection, unified dashboards for every region, and on-call routing for alerts.</div>
    <h2>Pricing</h2>
    <p class="pricing">Plans start at $49 per month for up to 20 hosts.</p>
    <h3>Contact</h3>
    <p>Email <a href="mailto:sales@techcorp.example">sales@techcorp.example</a> or call our phone line (555) 010-2000.</p>
  </main>
  <footer><p>Copyright TechCorp Inc</p></footer>
</body>
</html>"""


@pytest.fixture
def bare_html():
    """No headings, no JSON-LD, no canonical: just paragraphs."""
    return """<html><head><title>Notes</title></head>
<body>
  <p>First paragraph with a handful of plain words about gardening in spring.</p>
  <p>Second paragraph describing soil preparation and watering schedules for beginners.</p>
  <p>Third paragraph on choosing seeds and planting them at the right depth.</p>
</body></html>"""


@pytest.fixture
def contradiction_html():
    """Two paragraphs giving different founding years."""
    return """<html><head><title>About Acme</title></head>
<body><main>
  <h1>About Acme</h1>
  <p>Acme Robotics was founded in 2010 by a small group of engineers.</p>
  <p>Since it was founded in 2015, Acme Robotics has shipped thousands of robots.</p>
</main></body></html>"""


@pytest.fixture
def make_document():
    def _make(html, url="https://example.com/product", response=None):
        return Document(url, html, response)

    return _make
