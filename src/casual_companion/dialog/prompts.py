"""
Prompts for the perception calls (dialog act fallback, emotion).
"""

DIALOG_ACT_SYSTEM_PROMPT = "You are a dialog act classifier. Output strict JSON only."

DIALOG_ACT_PROMPT = """Classify the dialog act. Output ONLY JSON: {{"act": "<ask|answer|ack|repair|plan|feedback|share|greeting|unknown>", "confidence": <0-1>}}

Context:
{history}

User: "{text}"

JSON:"""

EMOTION_SYSTEM_PROMPT = "You are an emotion classifier. Output strict JSON only."

EMOTION_PROMPT = """Analyze the emotion in this message. Output ONLY valid JSON with this exact format:
{{"emotion": "<joy|sadness|anger|fear|surprise|neutral>", "intensity": <0.0-1.0>}}

Stress, worry and anxiety count as fear.

Message: "{text}"

JSON:"""
