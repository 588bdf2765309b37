"""
Prompts for the model-based quality rater.
"""

RATER_SYSTEM_PROMPT = "You are a response quality rater. Output strict JSON only."

RATER_PROMPT = """Rate this AI response on 4 dimensions (0-1 scale). Output ONLY JSON:
{{"empathy": <0-1>, "directness": <0-1>, "brevity": <0-1>, "humanness": <0-1>, "feedback": "<one sentence>"}}

USER: "{user_text}"
{emotion_line}
{dialog_act_line}

RESPONSE: "{response}"

TARGET BREVITY: {brevity}

Criteria:
- Empathy: Reflects user's emotion if present, shows warmth
- Directness: Answers question in first 1-2 sentences if asked
- Brevity: Matches target length (short=60-100, medium=100-160, long=160-250 words)
- Humanness: Sounds natural, uses contractions, varied rhythm, no "AI tells"

JSON:"""
