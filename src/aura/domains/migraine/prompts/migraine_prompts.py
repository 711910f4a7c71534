"""MCP Prompts: pre-built interaction templates for migraine journeys."""

from __future__ import annotations

from fastmcp import FastMCP


def register_migraine_prompts(mcp: FastMCP) -> None:
    """Register migraine domain MCP prompts."""

    @mcp.prompt()
    def migraine_risk_briefing() -> str:
        """Prompt template for a morning migraine risk briefing."""
        return """Give me my migraine risk briefing for today. Please:

1. Check my current migraine risk and explain the top factors in plain language
2. Show when during the next 24 hours my risk peaks, and why
3. Tell me whether the estimate came from pattern analysis or my personal model
4. Suggest two or three concrete things I can do today to lower my risk

If I haven't done today's check-in yet, remind me to record stress, hydration and caffeine."""

    @mcp.prompt()
    def trigger_review(time_period: str = "the last two months") -> str:
        """Prompt template for reviewing personal triggers and patterns."""
        return f"""Let's review my migraine patterns over {time_period}. I'd like to:

1. See which triggers show up most often in my migraines
2. Know which hours and days of the week are riskiest for me
3. Understand how the weather looked during my attacks
4. Check whether my triptan or NSAID use is approaching overuse levels

Please be specific and suggest what I could discuss with my doctor."""
