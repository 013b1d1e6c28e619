"""Prompts sent to the completion service."""

# System prompt pins the output shape: raw data only, pipe separated, N/A for gaps
SYSTEM_PROMPT = """\
You are a professional HR assistant.
Task: extract information from a candidate CV exactly as the requested template asks.

Rules:
  1. Return raw data only.  Do not explain anything.
  2. If a piece of information is missing, write "N/A".
  3. Format: fields are separated by the "|" character.
"""

# Default extraction instructions shown to the operator (editable per request)
DEFAULT_TEMPLATE = """\
DATA EXTRACTION REQUEST (RAW DATA FORMAT):

Extract the information from the CV and return ONE SINGLE DATA LINE.
- Fields are separated by the vertical bar "|".
- IMPORTANT: do NOT output a header row.
- Do NOT use markdown table formatting (no "|---|" line).
- Output raw data only so it can be pasted after the existing rows of a spreadsheet.

Fields to extract (in this exact order):
1. Full name
2. Nationality (write "N/A" if unknown)
3. Year of birth (year only, e.g. 1995)
4. Email
5. Phone number
6. University degree (University - Major)
7. Teaching certificate (certificate name, or "None")
8. Schools previously taught at (short list)
9. Experience summary (under 50 words)

Expected output example (one line only):
Nguyen Van A | Vietnam | 1990 | a@gmail.com | 0909000111 | HCMUT - Computer Science | IELTS 8.0 | VUS, ILA | 5 years teaching English.
"""

ATTACHMENT_NOTE = "(Use the attached file for extraction)"


def build_user_prompt(instructions: str, cv_text: str = "", has_attachment: bool = False) -> str:
    """Combine the operator's instructions with the pasted CV text and/or an attachment note."""
    lines = ["REQUEST:", instructions.strip(), "", "CV DATA:"]
    if cv_text.strip():
        lines.append(f"CV text: {cv_text.strip()}")
    if has_attachment:
        lines.append(ATTACHMENT_NOTE)
    return "\n".join(lines)
