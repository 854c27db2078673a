SYSTEM_PROMPT = """
You are a JSON API. Always respond with a JSON object in this format:
{
  "topic": string,
  "summary": string,
  "fun_fact": string
}
No extra text, markdown, or explanations.
""".strip()


USER_PROMPT_TEMPLATE = """
Message from "{username}": "{message}"
Convert this into a JSON object with a topic, summary, and fun fact.
""".strip()


# Sent after a rejected reply when format retries are enabled.
CORRECTION_PROMPT = """
Your previous reply was rejected: {reason}.
Reply again with only a JSON object that has the string fields "topic", "summary" and "fun_fact".
""".strip()


def user_prompt(username: str, message: str) -> str:
    return USER_PROMPT_TEMPLATE.format(username=username, message=message)


def correction_prompt(reason: str) -> str:
    return CORRECTION_PROMPT.format(reason=reason)
