"""Prompts for decision detection, brief generation and question answering.

Detection and brief prompts follow the "instructions after content"
pattern to avoid the "lost in the middle" problem with long transcripts.
The transcript is placed first, followed by instructions and the exact
JSON shape to return.
"""

DETECTION_SYSTEM = (
    "You analyze conversations (meeting transcripts, chat channels, issue "
    "threads) to detect whether a decision was made. You reply with a single "
    "JSON object and nothing else."
)

DETECTION_PROMPT = """Conversation:
{transcript}

---

Determine whether the conversation above reached a clear, final decision.

A decision is a choice that was made, an agreement reached, or a direction set.
Discussion, brainstorming, open questions and proposals nobody accepted are NOT decisions.

If participants changed their minds, report only the single LATEST decision.
Earlier positions that were reversed belong in options_discussed, not final_decision.

CONFIDENCE RUBRIC - follow this exactly:
- 0.9-1.0: Explicit final decision ("we're going with X", "final decision is X") with agreement
- 0.7-0.9: Clear agreement on a direction, even if not phrased as a decision
- 0.5-0.7: Tentative or partial agreement, likely but not confirmed
- Below 0.5: No real decision

Return ONLY a JSON object in this exact format:
{{
  "is_decision": true or false,
  "confidence": number between 0 and 1,
  "summary": "string or null",
  "problem_statement": "string or null",
  "options_discussed": ["array of strings, in the order raised"],
  "final_decision": "string or null",
  "rationale": "string or null",
  "participants": ["array of names"]
}}
"""

BRIEF_SYSTEM = (
    "You write structured decision briefs from conversations. You reply with "
    "a single JSON object and nothing else."
)

BRIEF_PROMPT = """Context: {context}

Conversation:
{transcript}

---

Write a decision brief for the decision reached in the conversation above.
If the decision changed during the conversation, describe the LATEST one.

Provide:
- title: short, specific title for the decision
- summary: executive summary in 2-3 sentences
- problem_statement: the problem that was being solved
- options_discussed: the alternatives that were considered, in the order raised
- final_decision: what was decided
- rationale: why it was decided
- action_items: follow-up actions or next steps (empty list if none)

Use ONLY information present in the conversation. Do not invent details.

Return ONLY a JSON object in this exact format:
{{
  "title": "string",
  "summary": "string",
  "problem_statement": "string",
  "options_discussed": ["array of strings"],
  "final_decision": "string",
  "rationale": "string",
  "action_items": ["array of strings"]
}}
"""

ASK_SYSTEM = """You are the assistant for KnowWhy, a decision memory system. You help users understand their past decisions.

Answer the question using only the decisions provided. Be concise but informative.
If the answer isn't in the decisions, say so clearly.
Use bullet points when listing multiple items."""

ASK_PROMPT = """Here are my recorded decisions:

{decisions}

My question is: {question}

Please answer based on the decisions above."""

DECISION_CONTEXT_TEMPLATE = """Decision: {title}
Summary: {summary}
Problem: {problem_statement}
Options: {options}
Final Decision: {final_decision}
Rationale: {rationale}
Action Items: {action_items}
Source: {source}
Date: {date}
---"""
