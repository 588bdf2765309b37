from casual_companion.utils.json_output import extract_json, parse_structured

__all__ = ["extract_json", "parse_structured"]
