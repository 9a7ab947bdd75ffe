"""Prompts for summary, mind map, concept map and flashcard generation."""

SUMMARY_BASE_INSTRUCTION = """
You are an assistant that summarizes study material in {language}.
Stay faithful to the content and never invent facts. Summary type: "{summary_type}".
"""

SUMMARY_STYLE = {
    "short": """
FORMAT (SHORT, NO BULLETS):
- Return 2-4 complete sentences in a single block of text.
- Do not use dashes, numbering or bullets.
""",
    "medium": """
FORMAT (MEDIUM):
- Return 3-6 short paragraphs of plain prose.
- Cover every main idea once; prefer clarity over detail.
""",
    "bullet": """
FORMAT (BULLETS):
- Return ONLY bullet points starting with the symbol "• ".
- Each bullet is ONE sentence. 5-10 bullets maximum.
- No numbering, no headings.
""",
    "detailed": """
FORMAT (LONG, NO BULLETS):
- Target length: 700-1300 words (minimum 650 words).
- Return 35-60 complete sentences organized in 10-20 paragraphs.
- Explain with context, causes, consequences, examples or comparisons where relevant.
- No bullets or numbering. Running paragraphs only.
- If the source material is short, expand with careful explanations and connections
  to reach the length, without inventing facts that are not in the text.
""",
}

SUMMARY_TASK = """
Task: summarize all of the material above (text + files) as one integrated summary in {language}.
Do not return JSON or Markdown. Plain running text only (or bullets if the type asks for them).
Final check: if the type is "detailed", make sure you reach at least 650 words.
"""

CHUNK_SUMMARY_PROMPT = """
**PARTIAL DATA NOTICE**

Due to token limits the source is being sent in parts.
This is **PART {chunk_num} of {total_chunks}**.

{previous_block}
**New part {chunk_num}:**
---
{chunk_text}
---

Write an UPDATED and COMPLETE summary that merges the previous summary (if any) with
the new part. Keep every important topic from both. Follow the format rules below.
{style}
"""

MINDMAP_PROMPT = """
You are a mind map generator. From the TEXT, build a hierarchical tree.

Return ONLY valid JSON (no ``` fences, no comments) with this shape:

{{
  "root": {{
    "id": "root",
    "label": "Central topic",
    "note": "optional",
    "children": [
      {{ "id": "n1", "label": "Main idea (max. 4 words)", "note": "optional", "children": [
        {{ "id": "n1a", "label": "Subtopic (max. 5 words)", "note": "optional", "children": [] }}
      ]}}
    ]
  }}
}}

RULES:
- Write labels in {language}.
- At most {max_levels} levels below the root; at most {children_per_node} children per node.
- Level 1 labels: max. 4 words. Level 2 labels: max. 5 words.
- Use "note" for a short clarifying sentence when it helps; omit it otherwise.
- Every id is unique.
- Pure JSON, no bullets or Markdown.

TEXT:
---
{text}
---
"""

CONCEPT_MAP_PROMPT = """
Build a "concept map" (expandable sections and sub-sections) in {language} from the TEXT.
Style: {style_title}
- At most {sections_max} sections.
- At most {subsections_max} "subsections" items at each level.
- Maximum depth: {max_depth} levels (section = level 1).
- Length: {content_length}.
- {extra}

Very important:
- The "subsections" key may appear at any level up to depth {max_depth}.
- Avoid very long lists at one level; spread them hierarchically.
- Return ONLY valid JSON (no comments, explanations or code blocks).

EXACT format:
{{
  "presentationData": {{
    "title": "Concept map title",
    "sections": [
      {{
        "emoji": "📌",
        "title": "Section",
        "content": "Short paragraph with key ideas.",
        "subsections": [
          {{
            "emoji": "🔹",
            "title": "Sub-section",
            "content": "Relevant detail.",
            "subsections": [
              {{ "emoji": "•", "title": "Sub-sub-section", "content": "Extra detail." }}
            ]
          }}
        ]
      }}
    ]
  }}
}}

TEXT:
{text}
"""

FLASHCARDS_PROMPT = """
From the following summary, generate between {min_cards} and {max_cards} flashcards in {language}.
Each flashcard has a "question" (direct question) and an "answer" (concise answer).
Return ONLY a valid JSON array, with no extra text.

Example:
[
  {{ "question": "Who proposed the theory of general relativity?", "answer": "Albert Einstein" }},
  {{ "question": "In which year did World War II begin?", "answer": "1939" }}
]

Summary:
{summary}
"""
