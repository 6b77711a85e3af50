"""
industry.py — Keyword-based industry detection and design principles.

detect_industry() tags the DesignSpec; design_principles() feeds the SVG
generation prompt so the mark knows which conventions to respect or break.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

GENERAL = "general"

INDUSTRY_KEYWORDS: Dict[str, List[str]] = {
    "technology": [
        "tech", "software", "app", "digital", "computer", "ai", "data", "automation",
        "startup", "platform", "saas", "cloud", "internet", "web", "mobile", "cyber",
        "developer", "machine learning",
    ],
    "finance": [
        "finance", "bank", "investment", "insurance", "wealth", "capital", "financial",
        "money", "credit", "loan", "trading", "fintech", "accounting", "payment",
    ],
    "healthcare": [
        "health", "medical", "doctor", "hospital", "wellness", "pharmacy", "clinic",
        "healthcare", "medicine", "therapy", "nurse", "patient", "dental", "fitness",
    ],
    "food": [
        "food", "restaurant", "cafe", "bakery", "catering", "cuisine", "chef", "culinary",
        "kitchen", "gourmet", "meal", "bistro", "coffee", "tea", "brewery", "wine",
    ],
    "retail": [
        "retail", "shop", "store", "boutique", "fashion", "clothing", "e-commerce",
        "shopping", "apparel", "accessories", "marketplace", "outlet",
    ],
    "education": [
        "education", "school", "university", "academy", "learning", "teaching", "tutoring",
        "college", "course", "student", "classroom", "training",
    ],
    "creative": [
        "creative", "design", "art", "studio", "agency", "photography", "film", "media",
        "music", "video", "animation", "illustration", "advertising",
    ],
    "hospitality": [
        "hotel", "resort", "travel", "tourism", "vacation", "hospitality", "lodging",
        "guest", "holiday", "adventure",
    ],
    "manufacturing": [
        "manufacturing", "factory", "industrial", "machinery", "engineering", "equipment",
        "fabrication", "steel", "tools", "robotics",
    ],
    "energy": [
        "energy", "power", "utility", "electricity", "solar", "renewable", "wind",
        "battery", "grid", "sustainable",
    ],
    "real_estate": [
        "real estate", "property", "housing", "realty", "apartment", "residential",
        "architecture", "renovation", "construction",
    ],
    "legal": [
        "legal", "law", "attorney", "lawyer", "counsel", "litigation", "notary", "compliance",
    ],
    "transportation": [
        "transport", "logistics", "shipping", "delivery", "freight", "aviation", "cargo",
        "supply chain", "trucking", "courier", "fleet",
    ],
    "entertainment": [
        "entertainment", "gaming", "game", "streaming", "festival", "event", "theater",
        "cinema", "podcast", "concert",
    ],
    "agriculture": [
        "agriculture", "farm", "farming", "organic", "harvest", "crop", "garden",
        "orchard", "ranch", "dairy",
    ],
    "nonprofit": [
        "nonprofit", "non-profit", "charity", "foundation", "volunteer", "donation",
        "community", "ngo", "cause",
    ],
}


@dataclass
class IndustryMatch:
    industry: str
    confidence: float
    matched_keywords: List[str] = field(default_factory=list)


def _matches(text: str, keyword: str) -> bool:
    # short keywords ("ai", "app") only count as whole words
    if len(keyword) <= 3:
        return keyword in text.split()
    return keyword in text


def detect_industry(description: str) -> IndustryMatch:
    """Best-matching industry and a 0.6–0.95 confidence (0.5 for 'general')."""
    if not description or not description.strip():
        return IndustryMatch(GENERAL, 0.5)

    text = " ".join(
        "".join(ch if ch.isalnum() or ch in " -" else " " for ch in description.lower()).split()
    )
    hits = {
        industry: [kw for kw in keywords if _matches(text, kw)]
        for industry, keywords in INDUSTRY_KEYWORDS.items()
    }
    hits = {k: v for k, v in hits.items() if v}
    if not hits:
        return IndustryMatch(GENERAL, 0.5)

    ranked = sorted(hits.items(), key=lambda kv: len(kv[1]), reverse=True)
    industry, keywords = ranked[0]
    total = sum(len(v) for v in hits.values())
    confidence = min(0.95, max(0.6, len(keywords) / total * 0.9 + 0.1))
    return IndustryMatch(industry, round(confidence, 2), keywords)


# ── Design principles (injected into the SVG prompt) ──────────────────────────

_PRINCIPLES: Dict[str, str] = {
    "technology": (
        "Conventions: geometric abstract icons, blue schemes, circuit or orbit motifs.\n"
        "Differentiate: avoid blue-only palettes, prefer a distinctive silhouette over a "
        "generic abstract shape, use negative space for a dual reading."
    ),
    "healthcare": (
        "Conventions: blue/green palettes, crosses, hearts, human figures, shields.\n"
        "Differentiate: balance warm accents with calm tones, abstract the care metaphor "
        "instead of literal medical symbols, keep forms soft and trustworthy."
    ),
    "finance": (
        "Conventions: navy and green, shields, pillars, upward arrows, serif wordmarks.\n"
        "Differentiate: convey stability through proportion rather than cliché growth "
        "arrows, one confident accent color, precise geometry."
    ),
    "food": (
        "Conventions: warm reds and oranges, utensils, chef hats, steam lines, leaves.\n"
        "Differentiate: hint at texture or craft, use an ingredient in an unexpected "
        "way, keep it appetising at favicon size."
    ),
    "retail": (
        "Conventions: shopping bags, tags, bold wordmarks.\n"
        "Differentiate: build a monogram or mark that works on packaging and labels, "
        "lean on a signature color."
    ),
    "education": (
        "Conventions: books, mortarboards, owls, apples, shields.\n"
        "Differentiate: express growth or curiosity abstractly, friendly but credible forms."
    ),
    "entertainment": (
        "Conventions: play buttons, film strips, stars, bright gradients.\n"
        "Differentiate: motion implied through shape, one bold color instead of gradients."
    ),
    "real_estate": (
        "Conventions: roofs, cranes, hard hats, bricks.\n"
        "Differentiate: structural geometry and strong verticals without literal tools."
    ),
    "agriculture": (
        "Conventions: wheat, sun, fields, tractors, leaves.\n"
        "Differentiate: field rows or seed forms as clean geometry, earthy but modern palette."
    ),
    "nonprofit": (
        "Conventions: hands, hearts, globes, people holding hands.\n"
        "Differentiate: focus on the specific cause, avoid generic community clichés."
    ),
}

DEFAULT_PRINCIPLES = (
    "Use a harmonious, limited palette, balanced composition, clear visual hierarchy and "
    "generous negative space. Avoid clichés (swooshes, globes, handshakes, lightbulbs)."
)


def design_principles(industry: str) -> str:
    return _PRINCIPLES.get((industry or "").lower(), DEFAULT_PRINCIPLES)
