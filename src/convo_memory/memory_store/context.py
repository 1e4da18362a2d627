"""
Rendering of a compressed context into prompt text.

The output is prepended to the next language model call, so section
order is fixed: summary, insights, business facts, user profile.
"""

from convo_memory.memory_store.models import CompressedContext


def render_context(context: CompressedContext) -> str:
    """
    Format a compressed context as a human-readable prompt block.

    Args:
        context: Context of the conversation being continued

    Returns:
        Prompt text; the user profile line is always present
    """
    parts: list[str] = []

    if context.conversation_summary:
        parts.append(
            f"Previous conversation summary: {context.conversation_summary}\n\n")

    if context.key_insights:
        bullets = "\n".join(f"- {insight}" for insight in context.key_insights)
        parts.append(f"Key insights from our discussion:\n{bullets}\n\n")

    business = context.business_context
    if business.target_customer:
        parts.append(f"Target customer: {business.target_customer}\n")
    if business.challenges:
        parts.append(f"Current challenges: {', '.join(business.challenges)}\n")

    profile = context.user_profile
    parts.append(f"User: {profile.name} ({profile.role}) at {profile.company}\n")
    if profile.industry:
        parts.append(f"Industry: {profile.industry}\n")

    return "".join(parts)
