from __future__ import annotations

# Prompt templates for the AI co-pilot

COPILOT_SYSTEM_PROMPT = (
    "You are an advanced AI Trading Co-Pilot for the QuantAI platform. Your goal is to help users "
    "interpret market signals, understand news sentiment, and refine their algorithmic strategies. "
    "Be concise, professional, and data-driven. Do not give financial advice, but rather "
    '"market analysis" and "educational insights".'
)

NEWS_IMPACT_PROMPT = """
Analyze the following financial news item as a senior market analyst.
Title: {title}
Source: {source}
Summary: {summary}
Region: {region}

Provide a concise (max 3 sentences) analysis of the immediate market impact, specifically identifying which sectors are most affected and the suggested trading stance (Buy/Sell/Wait) for related assets.
"""

STRATEGY_OUTLOOK_PROMPT = """
Given the current simulated portfolio focusing on: {watchlist}.
Act as an algorithmic trading strategist. Provide a high-level strategic outlook for the next trading session.
Focus on risk management and potential entry points. Limit response to 50 words.
"""

# Static fallbacks when the service is unconfigured
FALLBACK_NEWS_IMPACT = (
    "API Key not configured. Using simulated analysis: This event likely has a moderate impact on the "
    "sector due to prevailing market conditions."
)
FALLBACK_STRATEGY = (
    "Simulated Strategy: Accumulate technology stocks on dips. Maintain defensive positions in healthcare."
)
FALLBACK_CHAT = (
    "I am the QuantAI Co-Pilot. Please configure your API Key to enable live chatting. Since I am in demo "
    "mode, I suggest focusing on risk management today."
)

# Returned when a configured service fails
FAILED_NEWS_IMPACT = "Failed to generate analysis. Please try again later."
FAILED_STRATEGY = "Unable to generate strategy at this time."
FAILED_CHAT = "Sorry, I'm having trouble connecting to the market brain right now."
