"""Construction of the synthetic follow-up conversation."""

from dataclasses import dataclass

from domain.models import ConversationMessage, ToolResult


@dataclass(frozen=True)
class FollowupTemplate:
    """Wording of the two synthetic turns appended for the follow-up pass.

    Attributes:
        assistant_placeholder: Assistant turn used when the first pass produced no text
        separator: Text placed between tool outputs
        header: Line opening the synthetic user turn
        instruction: Closing request asking the model to answer from the outputs
    """

    assistant_placeholder: str = "Let me look that up."
    separator: str = "\n\n---\n\n"
    header: str = "Here are the tool results:"
    instruction: str = (
        "Using these results, answer my previous request. "
        "Cite sources where useful and say so if a tool failed."
    )


DEFAULT_FOLLOWUP_TEMPLATE = FollowupTemplate()


def build_followup_messages(
    messages: list[ConversationMessage],
    first_pass_text: str,
    results: list[ToolResult],
    template: FollowupTemplate = DEFAULT_FOLLOWUP_TEMPLATE,
) -> list[ConversationMessage]:
    """Build the conversation for the follow-up pass.

    The original history is extended by exactly two turns: the assistant's
    first-pass text and a user turn carrying every tool output in order,
    failed ones included.
    """
    assistant_text = first_pass_text.strip() or template.assistant_placeholder
    outputs = template.separator.join(f"[{r.name}: {r.query}]\n{r.result_text}" for r in results)
    user_text = f"{template.header}\n\n{outputs}\n\n{template.instruction}"
    return [*messages, ConversationMessage.assistant(assistant_text), ConversationMessage.user(user_text)]
