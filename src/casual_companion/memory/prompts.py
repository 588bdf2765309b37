"""
Prompts for memory extraction.
"""

MEMORY_EXTRACTION_SYSTEM_PROMPT = "You are a memory extractor. Output strict JSON only."

MEMORY_EXTRACTION_PROMPT = """Extract things worth remembering about the user from this {source} message.

Return a single JSON object with a top-level key "memories" holding a list of
objects with these fields:
- "type": one of "fact", "preference", "plan", "promise", "inside_joke", "sentiment"
    - fact: stable information about the user (name, job, family, pets, where they live)
    - preference: likes and dislikes
    - plan: something the user intends to do, with its timing if given
    - promise: a commitment made by either side ("I'll call you tomorrow")
    - inside_joke: a running joke or shared nickname
    - sentiment: how the user feels about something right now
- "content": a short, self-contained statement in the first person for the user
  ("I have an exam tomorrow"), or quoting the commitment for promises

Skip small talk and filler ("ok", "thanks", "haha"). Return {{"memories": []}} when
nothing is worth remembering.

Text: "{text}"

JSON:"""
