from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

FOLLOW_UP_SYSTEM_PROMPT = """You are an AI assistant helping to write professional follow-up emails.

Your task is to generate a follow-up email for a stalled conversation thread where \
the user sent the last message and hasn't received a reply.

CONTEXT:
- The user is a business owner/professional who needs to follow up on work conversations
- The follow-up should be polite, professional, and contextually relevant
- Never be passive-aggressive or rude
- Keep the email concise - busy people appreciate brevity

OUTPUT FORMAT:
Return a JSON object with the following structure:
{
  "subject": "Re: [original subject] - follow up" or similar,
  "body": "The email body without greeting or signature (those will be added)",
  "tone": "professional" | "friendly" | "urgent",
  "reasoning": "Brief explanation of why you chose this approach"
}

TONE GUIDELINES:
- professional: Standard business follow-up, neutral and courteous
- friendly: Warmer tone for established relationships or informal contexts
- urgent: More direct for time-sensitive matters (use sparingly)

RULES:
1. Reference specific details from the thread
2. Acknowledge the recipient's busy schedule without being sycophantic
3. State clearly what you're following up on and what you need
4. Suggest a specific next step when appropriate
5. Keep the body under 100 words unless complexity requires more
6. Don't include greetings like "Hi [Name]" or signatures
7. Don't make up facts or commitments not present in the thread
8. If the original request was unclear, politely ask for clarification"""

BODY_PREVIEW_CHARS = 500


class ContextEmail(Protocol):
    sender_email: str
    body: str
    received_at: datetime


def _truncate(body: str, limit: int = BODY_PREVIEW_CHARS) -> str:
    if len(body) > limit:
        return body[:limit] + "..."
    return body


def build_follow_up_message(
    subject: str | None,
    waiting_on_email: str | None,
    days_waiting: int,
    emails: Sequence[ContextEmail],
) -> str:
    """Build the user message describing a stalled thread."""
    history = "\n\n---\n\n".join(
        f"[{i}] From: {email.sender_email} ({email.received_at.date().isoformat()})\n"
        f"{_truncate(email.body or '')}"
        for i, email in enumerate(emails, 1)
    )

    return (
        "Generate a follow-up email for this stalled thread:\n\n"
        f"THREAD SUBJECT: {subject or 'No subject'}\n"
        f"WAITING ON: {waiting_on_email or 'Unknown recipient'}\n"
        f"DAYS WITHOUT REPLY: {days_waiting}\n\n"
        "CONVERSATION HISTORY (chronological):\n"
        f"{history}\n\n"
        "---\n\n"
        "Please generate an appropriate follow-up email based on this context."
    )


class PromptAdapter:
    """Adapts prompts for different LLM providers."""

    @staticmethod
    def for_claude(
        system: str,
        messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        """Format for Anthropic Claude API (system as a text block)."""
        return {
            "system": [{"type": "text", "text": system}],
            "messages": messages,
        }

    @staticmethod
    def for_openai(
        system: str,
        messages: list[dict[str, str]],
    ) -> dict[str, Any]:
        """Format for OpenAI API (auto-caching)."""
        return {
            "messages": [
                {"role": "system", "content": system},
                *messages,
            ],
        }
