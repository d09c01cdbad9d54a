"""Centralized constants shared across the premortem pipeline.

This module is the SINGLE SOURCE OF TRUTH for keyword tables, the
failure-mode catalog, the regulation table, disclaimer templates and the
fixed early-warning signals. Reused by:
  - Decomposition heuristics
  - Retrieval parsers
  - Synthesis rules
  - Scoring

The probabilities, timeframes and thresholds below are hand-tuned
configuration data.
"""

from __future__ import annotations

# ── Risk ordinals ────────────────────────────────────────────────────────
# LOW < MODERATE < ELEVATED < CRITICAL, aggregated numerically as 1–4.

RISK_LEVEL_VALUES: dict[str, int] = {
    "LOW": 1,
    "MODERATE": 2,
    "ELEVATED": 3,
    "CRITICAL": 4,
}

# Breakdown weights; they sum to 1.0
BREAKDOWN_WEIGHTS: dict[str, float] = {
    "market": 0.25,
    "timing": 0.15,
    "regulatory": 0.15,
    "competition": 0.25,
    "execution": 0.20,
}

CONFIDENCE_FLOOR = 40
CONFIDENCE_CAP = 85
CONFIDENCE_PER_EVIDENCE = 3

# ── Decomposition heuristics ─────────────────────────────────────────────
# Scanned in order; the first table entry with a matching keyword wins.

TARGET_MARKET_RULES: list[tuple[tuple[str, ...], str]] = [
    (("b2b", "enterprise", "business"), "B2B / Enterprise customers"),
    (("developer", "engineer"), "Software developers and engineers"),
    (("startup", "founder"), "Startups and founders"),
    (("small business", "smb"), "Small and medium businesses"),
    (("student", "education"), "Students and educational institutions"),
    (("health", "patient"), "Healthcare consumers and patients"),
]
DEFAULT_TARGET_MARKET = "General consumers"

BUSINESS_MODEL_RULES: list[tuple[tuple[str, ...], str]] = [
    (("subscription", "monthly"), "Subscription-based SaaS"),
    (("marketplace", "commission"), "Marketplace with transaction fees"),
    (("api", "platform"), "API/Platform with usage-based pricing"),
    (("advertising", "ad-supported"), "Advertising-supported free product"),
    (("hardware", "device"), "Hardware sales with software services"),
    (("consulting", "service"), "Professional services / Consulting"),
]
DEFAULT_BUSINESS_MODEL = "Freemium SaaS"

MAX_ASSUMPTIONS = 5
MAX_HYPOTHESES = 5

# ── Retrieval ────────────────────────────────────────────────────────────

MARKET_SIZE_UNKNOWN = "Unknown"
MARKET_SIZE_NOT_DETERMINED = "Not determined"
GROWTH_RATE_UNKNOWN = "Unknown"
GROWTH_RATE_NOT_DETERMINED = "Not determined"

MAX_TRENDS = 5
MAX_RECENT_NEWS = 3
MAX_COMPETITORS = 10
MAX_HISTORICAL_MATCHES = 10
HISTORICAL_FETCH_LIMIT = 100

COMPETITOR_STATUS_SHUT_DOWN = "Shut down"
COMPETITOR_STATUS_ACQUIRED = "Acquired"
COMPETITOR_STATUS_STRUGGLING = "Struggling"
COMPETITOR_STATUS_ACTIVE = "Active"

# (regex, display name, jurisdiction, case-sensitive)
REGULATION_PATTERNS: list[tuple[str, str, str, bool]] = [
    (r"\bGDPR\b", "GDPR", "European Union", False),
    (r"\bHIPAA\b", "HIPAA", "United States (Healthcare)", False),
    (r"\bSOC\s*2\b", "SOC 2", "United States", False),
    (r"\bPCI[\s-]*DSS\b", "PCI-DSS", "Global (Payment Cards)", False),
    (r"\bCCPA\b", "CCPA", "California, USA", False),
    (r"\bSEC\b", "SEC Regulations", "United States (Finance)", True),
    (r"\bFTC\b", "FTC Guidelines", "United States", True),
    (r"\bFDA\b", "FDA Regulations", "United States (Health/Food)", True),
]
COMPLIANCE_COST_VARIABLE = "Variable"
ELEVATED_COMPLIANCE_COST = 50_000

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "is", "are", "was", "were", "be", "been",
        "being", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "must", "that", "which", "who",
        "whom", "this", "these", "those", "it", "its", "they", "their", "them",
    }
)

# ── Synthesis ────────────────────────────────────────────────────────────

MAX_FAILURE_MODES = 7
MAX_PARSED_FAILURE_MODES = 5
MAX_COMPARABLES = 5
DEFAULT_FAILURE_PROBABILITY = 50
DEFAULT_FAILURE_TIMEFRAME = "12-24 months"

# Catalog entries are keyed on business-model keyword membership.
# An empty keyword tuple means the mode always applies.
FAILURE_MODE_CATALOG: list[dict] = [
    {
        "keywords": ("marketplace",),
        "name": "Chicken-and-Egg Problem",
        "description": "Failure to achieve critical mass on both supply and demand sides simultaneously",
        "probability": 70,
        "timeframe": "6-18 months",
        "triggers": [
            "Imbalanced growth between supply/demand",
            "High churn on one side",
            "Poor unit economics early on",
        ],
        "mitigations": [
            "Focus on one side first",
            "Create artificial supply",
            "Geographic concentration",
        ],
    },
    {
        "keywords": ("saas", "subscription"),
        "name": "Churn Death Spiral",
        "description": "Customer churn rate exceeds acquisition rate, leading to inevitable decline",
        "probability": 60,
        "timeframe": "12-24 months",
        "triggers": [
            "Monthly churn > 5%",
            "Declining engagement metrics",
            "Feature requests not addressed",
        ],
        "mitigations": [
            "Focus on activation and onboarding",
            "Build switching costs",
            "Customer success program",
        ],
    },
    {
        "keywords": ("saas", "subscription"),
        "name": "CAC Blowout",
        "description": "Customer acquisition costs exceed lifetime value, making growth unprofitable",
        "probability": 55,
        "timeframe": "12-18 months",
        "triggers": [
            "Rising ad costs",
            "Declining conversion rates",
            "LTV < 3x CAC",
        ],
        "mitigations": [
            "Organic growth channels",
            "Product-led growth",
            "Referral programs",
        ],
    },
    {
        "keywords": ("consumer", "app"),
        "name": "Viral Loop Failure",
        "description": "Product fails to achieve organic viral growth, requiring unsustainable paid acquisition",
        "probability": 75,
        "timeframe": "3-12 months",
        "triggers": [
            "K-factor < 1",
            "Low sharing/invite rate",
            "Poor retention D1/D7/D30",
        ],
        "mitigations": [
            "Build sharing into core loop",
            "Incentivize referrals",
            "Community building",
        ],
    },
    {
        "keywords": ("ai", "ml"),
        "name": "AI Commoditization",
        "description": "Large incumbents release similar AI features, eliminating startup advantage",
        "probability": 65,
        "timeframe": "6-18 months",
        "triggers": [
            "Foundation model improvements",
            "Big tech feature announcements",
            "Open source alternatives",
        ],
        "mitigations": [
            "Proprietary data moat",
            "Vertical specialization",
            "Workflow integration",
        ],
    },
    {
        "keywords": (),
        "name": "Premature Scaling",
        "description": "Scaling operations before achieving product-market fit, burning capital inefficiently",
        "probability": 50,
        "timeframe": "12-24 months",
        "triggers": [
            "Hiring ahead of revenue",
            "Multiple market expansion",
            "Feature bloat",
        ],
        "mitigations": [
            "Focus on one market segment",
            "Validate before scaling",
            "Lean operations",
        ],
    },
]

SATURATION_COMPETITOR_COUNT = 5
CRITICAL_SATURATION_COUNT = 10
CRITICAL_FAILED_COMPETITOR_COUNT = 2
AI_TERMS: tuple[str, ...] = ("ai", "gpt", "llm")
LATE_ENTRY_TERMS: tuple[str, ...] = ("declining", "mature")

# ── Scoring ──────────────────────────────────────────────────────────────

MAX_LEVERS = 6
MAX_WARNINGS = 8
MAX_FAILURE_MODE_LEVERS = 3
MAX_FAILURE_MODE_WARNINGS = 4
MAX_MARKET_RISK_WARNINGS = 2

DISCLAIMER_TEMPLATES: dict[str, str] = {
    "CRITICAL": (
        "This assessment reflects historical patterns suggesting elevated risk factors. "
        "{confidence}% of similar ventures have encountered significant challenges. "
        "This is not a prediction of failure, but an indicator of areas requiring careful attention."
    ),
    "ELEVATED": (
        "Historical data indicates several risk factors common in this space. "
        "With {confidence}% evidence coverage, we recommend addressing the highlighted concerns "
        "while recognizing that many successful startups have navigated similar challenges."
    ),
    "MODERATE": (
        "The risk profile shows a mix of historical patterns. At {confidence}% confidence, "
        "some challenges are common while others are less prevalent. "
        "Success depends heavily on execution and market timing."
    ),
    "LOW": (
        "Fewer common failure patterns are present based on {confidence}% of available evidence. "
        "However, this does not guarantee success. Novel challenges may emerge "
        "that aren't reflected in historical data."
    ),
}

# Always appended to the early-warning list, after derived warnings.
FIXED_WARNINGS: list[dict] = [
    {
        "key": "runway",
        "signal": "Runway dropping below 6 months",
        "description": "Cash runway insufficient for next fundraise or pivot",
        "threshold": "Less than 6 months of operating capital",
        "monitoring_method": "Weekly cash flow monitoring",
        "urgency": "CRITICAL",
    },
    {
        "key": "retention",
        "signal": "Retention rate decline",
        "description": "User/customer retention dropping below industry benchmarks",
        "threshold": "Month-over-month retention drops below 80%",
        "monitoring_method": "Cohort analysis dashboard",
        "urgency": "ELEVATED",
    },
]
