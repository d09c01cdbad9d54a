"""Free-text parser tests against literal generated-text samples."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from premortem.pipeline.parsers import (
    classify_competitor_status,
    extract_keywords,
    parse_competitor_data,
    parse_failure_modes,
    parse_market_data,
    parse_regulatory_data,
)

MARKET_TEXT = (
    "The global invoicing software market is valued at $12.5 billion in 2024, "
    "growing at 9.2% CAGR through 2030.\n"
    "Key trends: shift toward automated reconciliation and embedded payments.\n"
    "Recent news: In March 2025, Stripe launched a new invoicing product."
)

COMPETITOR_TEXT = """1. **FreshBooks** - Cloud accounting platform that offers invoicing for freelancers. Raised $130 million. Website: https://www.freshbooks.com
2. **Bonsai** - Provides contracts and invoicing for independent workers. https://www.hellobonsai.com
3. **Invoice2go** - Acquired by BILL in 2021. Mobile invoicing app for small businesses.
4. **Tradeshift Go** - Shut down in 2022 after failing to find traction.
"""

REGULATORY_TEXT = (
    "Businesses handling EU customer data must comply with GDPR, with typical compliance "
    "costs of $20,000 - $80,000 for small firms. Payment processing requires PCI DSS "
    "certification. The SEC does not regulate invoicing tools."
)

FAILURE_TEXT = """Here are the most common failure patterns:

1. **Churn Death Spiral**: Customers cancel faster than new ones sign up. Occurs in roughly 45% of subscription startups, typically within 12-18 months.
2. **Payment Collection Failure**: Freelancers stop using tools that do not get them paid faster. Seen in 30% of cases over 6-12 months.
3. Short one.
"""


class TestMarketData:
    def test_extracts_size_growth_trends_and_news(self):
        data = parse_market_data(MARKET_TEXT)

        assert data.size == "$12.5 billion"
        assert data.growth_rate == "9.2% annually"
        assert data.trends == ["shift toward automated reconciliation and embedded payments."]
        assert data.recent_news == ["Recent news: In March 2025, Stripe launched a new invoicing product."]

    def test_defaults_when_nothing_matches(self):
        data = parse_market_data("No numbers here at all")

        assert data.size == "Not determined"
        assert data.growth_rate == "Not determined"
        assert data.trends == []
        assert data.recent_news == []

    def test_short_trends_are_dropped(self):
        data = parse_market_data("Trend: AI\nDevelopments: consolidation among mid-market vendors")
        assert data.trends == ["consolidation among mid-market vendors"]

    def test_trends_capped_at_five(self):
        text = "\n".join(f"Trend: meaningful shift number {i} in buyers" for i in range(8))
        assert len(parse_market_data(text).trends) == 5


class TestCompetitors:
    def test_parses_numbered_bold_listing(self):
        competitors = parse_competitor_data(COMPETITOR_TEXT)

        assert [c.name for c in competitors] == ["FreshBooks", "Bonsai", "Invoice2go", "Tradeshift Go"]
        assert [c.status for c in competitors] == ["Active", "Active", "Acquired", "Shut down"]

        freshbooks = competitors[0]
        assert freshbooks.funding == "$130 million"
        assert freshbooks.website == "https://www.freshbooks.com"
        assert freshbooks.description == "invoicing for freelancers"

        assert competitors[1].description == "contracts and invoicing for independent workers"
        assert competitors[1].funding is None

    def test_description_falls_back_to_section_prefix(self):
        competitors = parse_competitor_data(COMPETITOR_TEXT)
        assert competitors[2].description.startswith("Invoice2go - Acquired by BILL")

    def test_splits_on_bold_lines_and_headings(self):
        text = (
            "**Wave** - Free accounting software that offers invoicing.\n"
            "**Zoho Invoice** - Provides invoicing for SMBs.\n"
            "### Harvest: time tracking tool that builds invoices from hours\n"
        )
        assert [c.name for c in parse_competitor_data(text)] == ["Wave", "Zoho Invoice", "Harvest"]

    def test_lowercase_sections_are_rejected(self):
        text = "1. some lowercase thing - that is not a company name at all\n"
        assert parse_competitor_data(text) == []

    def test_capped_at_ten(self):
        text = "\n".join(f"{i}. Company{i} - builds invoicing software for agencies" for i in range(1, 14))
        assert len(parse_competitor_data(text)) == 10

    def test_status_priority(self):
        assert classify_competitor_status("Acquired, then shut down in 2020") == "Shut down"
        assert classify_competitor_status("Acquired after a pivot") == "Acquired"
        assert classify_competitor_status("Announced layoffs last year") == "Struggling"
        assert classify_competitor_status("Growing steadily") == "Active"


class TestRegulations:
    def test_detects_table_regulations_in_table_order(self):
        regulations = parse_regulatory_data(REGULATORY_TEXT)

        assert [r.regulation for r in regulations] == ["GDPR", "PCI-DSS", "SEC Regulations"]
        gdpr = regulations[0]
        assert gdpr.jurisdiction == "European Union"
        assert gdpr.compliance_cost == "$20,000 - $80,000"
        assert len(gdpr.impact) <= 150
        assert "GDPR" in gdpr.impact

    def test_agency_acronyms_are_case_sensitive(self):
        assert parse_regulatory_data("Use a secure vault and avoid the ftc and fda rules") == []

    def test_privacy_acronyms_are_case_insensitive(self):
        names = [r.regulation for r in parse_regulatory_data("Data is subject to gdpr and ccpa.")]
        assert names == ["GDPR", "CCPA"]

    def test_cost_defaults_to_variable(self):
        regulations = parse_regulatory_data("HIPAA applies to patient records.")
        assert regulations[0].compliance_cost == "Variable"
        assert regulations[0].jurisdiction == "United States (Healthcare)"


class TestFailureModes:
    def test_parses_named_sections(self):
        modes = parse_failure_modes(FAILURE_TEXT)

        assert [m.name for m in modes] == ["Churn Death Spiral", "Payment Collection Failure"]
        assert [m.probability for m in modes] == [45, 30]
        assert [m.timeframe for m in modes] == ["12-18 months", "6-12 months"]
        assert "**" not in modes[0].description
        assert modes[0].triggers == []

    def test_defaults_without_percentage_or_timeframe(self):
        text = "## Founder Burnout\nFounders exhaust themselves before the product finds its market fit."
        modes = parse_failure_modes(text)

        assert len(modes) == 1
        assert modes[0].name == "Founder Burnout"
        assert modes[0].probability == 50
        assert modes[0].timeframe == "12-24 months"

    def test_capped_at_five(self):
        text = "\n".join(
            f"{i}. **Pattern number {i}**: a long enough description of this failure pattern here."
            for i in range(1, 9)
        )
        assert len(parse_failure_modes(text)) == 5


class TestKeywords:
    def test_filters_stop_words_short_words_and_duplicates(self):
        assert extract_keywords("The AI tool, the AI tool for invoices!") == ["tool", "invoices"]

    def test_keeps_first_occurrence_order(self):
        assert extract_keywords("beta alpha beta gamma") == ["beta", "alpha", "gamma"]
