"""
Prompts for planning, drafting, editing and summarizing a turn.
"""

PLANNER_SYSTEM_PROMPT = "You are a conversation planner. Output strict JSON only."

PLANNER_PROMPT = """Create a response plan for {name}. Output ONLY valid JSON:

{{
  "intent": "<comfort|plan|tease|celebrate|clarify|ask|acknowledge|inform|apologize|suggest>",
  "tone": "<warm|playful|thoughtful|candid|flirty|neutral|empathetic|apologetic>",
  "brevity": "<short|medium|long>",
  "empathy": "<low|medium|high>",
  "beats": ["<hook>", "<answer>", "<followup>"],
  "avoid": ["<phrase1>", "<phrase2>"],
  "keywords": ["<keyword1>", "<keyword2>"]
}}

User: "{text}"
Dialog Act: {dialog_act}
Emotion: {emotion} ({emotion_score:.2f})
Suggested Tone: {tone}
Turn Rules: {rules}
Style: {style}
Context: {context}
Avoid: {avoid}

JSON:"""

DRAFT_SYSTEM_PROMPT = "You are {name}. Be warm, natural, and conversational."

DRAFT_PROMPT = """{persona}

STYLE: {style}
TURN RULES: {turn}
PLAN: {plan}
CONTEXT: {context}
{callback}
User: "{text}"

Respond as {name}:"""

EDITOR_SYSTEM_PROMPT = "You are an expert editor. Make text sound natural and human."

EDIT_PROMPT = """Rewrite this message to sound more human and natural:

ORIGINAL: "{draft}"

STYLE: {style}
AVOID: {avoid}
TONE: {tone}
BREVITY: {brevity}

Make it conversational, use contractions, vary sentence length, sound spoken.
Never use any phrase from the AVOID list.
Output the improved text only:"""

RE_EDITOR_SYSTEM_PROMPT = "You are an expert editor. Fix the specified issues."

RE_EDIT_PROMPT = """Rewrite to improve: {issues}.

ORIGINAL: "{text}"

Keep meaning. Output improved text only:"""

SUMMARIZER_SYSTEM_PROMPT = (
    "You are a conversation summarizer. Output concise bullet-point summaries only."
)

SUMMARY_PROMPT = """Summarize this conversation in bullet points.

CONVERSATION:
{conversation}

Cover:
- Key topics discussed
- User preferences/facts mentioned
- Plans or commitments made
- Unresolved questions
- Emotional context

Keep it concise (under 200 words). Use bullet points:"""

SUMMARY_UPDATE_PROMPT = """Update this conversation summary with new developments.

PREVIOUS SUMMARY:
{previous}

NEW MESSAGES:
{conversation}

Create an updated bullet-point summary covering:
- Key topics discussed
- User preferences/facts mentioned
- Plans or commitments made
- Unresolved questions
- Emotional context

Keep it concise (under 200 words). Use bullet points:"""
