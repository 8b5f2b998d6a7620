"""
Prompts for the PREVIEW workflow only:
  (1) Extracting key details from a finished draft (sent through generate)
  (2) Refining a draft from a user instruction (used when talking to OpenAI directly;
      the HTTP generation service builds its own refinement prompt)
"""

# Canonical keys the extraction prompt asks for, in the order they appear in the template.
EXTRACTION_KEYS = (
    ("Document Type", "type of document"),
    ("Party 1 Name", "first party name"),
    ("Party 2 Name", "second party name"),
    ("Date", "document date"),
    ("Property Address", "property address if applicable"),
    ("Consideration", "monetary amount if applicable"),
    ("Governing Law", "governing law if mentioned"),
)


def _extraction_template() -> str:
    body = ",\n".join(f'  "{key}": "{hint}"' for key, hint in EXTRACTION_KEYS)
    return "{\n" + body + "\n}"


def build_detail_extraction_prompt(document_content: str) -> str:
    """Prompt asking for ONLY a JSON object with the canonical detail keys."""
    return f"""Please analyze this legal document and extract the key details in the following JSON format:

{_extraction_template()}

Document to analyze:
{document_content}

Please respond with ONLY the JSON object containing the extracted details."""


REFINEMENT_SYSTEM_PROMPT = """You are revising a legal document draft. Apply the user's requested change and return the COMPLETE revised document.

RULES:
1. Change only what the request asks for. Keep every other section, heading, number and party detail exactly as it is.
2. Keep the markdown structure of the draft (headings, numbered clauses, bold labels).
3. Use formal legal language consistent with the rest of the draft.
4. Return ONLY the full revised document. No explanation, no commentary, no code fences.
"""


def build_refinement_prompt(current_draft: str, user_request: str) -> str:
    """User message for a refinement turn: the whole current draft plus the instruction."""
    return f"""Current draft:
---
{current_draft}
---

Requested change:
{user_request.strip()}

Return the full revised document."""
