"""Prompt templates for the extraction gateway."""

STARTUP_EXTRACTION_PROMPT = """Analyze the text below and decide whether it announces a startup funding round or a new startup launch.

If it does NOT (general news, opinion, job post, public company earnings, listicle), reply:
{{"isValid": false, "reason": "<short reason>"}}

If it does, reply:
{{
  "isValid": true,
  "data": {{
    "name": "Company name only",
    "dateAnnounced": "YYYY-MM-DD or null",
    "description": "One sentence on what the company does",
    "website": "Official website URL or null",
    "fundingAmount": "e.g. $5M, or null",
    "roundType": "Pre-Seed | Seed | Series A | Series B | ... or null",
    "location": "City, Country or null",
    "founders": ["Full Name", "..."],
    "investors": ["Investor", "..."],
    "industry": "Primary industry",
    "tags": ["keyword", "..."]
  }}
}}

Rules:
- Only use facts stated in the text. Never invent founders or amounts.
- Reply with JSON only, no commentary.
{date_hint}
TEXT:
{text}
"""

DATE_HINT = "- The item was published on {date_context}. Use it when the text gives no explicit date.\n"

COMPANY_EXTRACTION_PROMPT = """Extract the startup described in this search result.

Source URL: {source_url}

Reply with JSON only:
{{
  "isStartup": true or false,
  "confidence": 0.0-1.0,
  "company": {{
    "name": "Company name",
    "description": "What it does",
    "website": "URL or null",
    "fundingAmount": "e.g. $5M or null",
    "roundType": "Seed, Series A, ... or null",
    "dateAnnounced": "YYYY-MM-DD or null",
    "location": "City, Country or null",
    "industry": "Primary industry or null",
    "founders": [],
    "investors": []
  }}
}}

If the text is not about a specific startup, reply {{"isStartup": false, "confidence": 0}}.

CONTENT:
{text}
"""

FOUNDER_EXTRACTION_PROMPT = """The search results below mention the company "{company}".
List the full names of its founders or co-founders that are explicitly stated.
Reply with a JSON array of strings only, e.g. ["Jane Doe", "John Smith"]. Reply [] if none are stated.

RESULTS:
{text}
"""

INDUSTRY_CLASSIFICATION_PROMPT = """Classify the primary industry of this startup.
Choose exactly one of: {industries}.

Company: {name}
Description: {description}

Reply with JSON only: {{"industry": "<one of the list>"}}
"""
