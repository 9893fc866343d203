from tdd_agent.parsing.scenarios import extract_json_array, format_scenarios, parse_scenarios

__all__ = ["extract_json_array", "format_scenarios", "parse_scenarios"]
