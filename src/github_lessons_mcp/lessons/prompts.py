from github_lessons_mcp.lessons.errors import EmptyDiffError
from github_lessons_mcp.lessons.models import CommitRecord

PROMPT_CHARACTER_LIMIT = 50000
PROMPT_TRUNCATION_MARKER = "\n\n[Content truncated due to size limits]"

LESSON_SYSTEM_PROMPT = """
You are a professional software mentor and technical educator. You will be given a single commit from a GitHub
repository: its commit message followed by the diff of every file it changed.

Write a lesson of roughly 500 words for a developer who wants to learn from this commit. The lesson should:
1. Explain what changed and why the author most likely made the change.
2. Walk through the most important parts of the diff and the programming concepts they rely on.
3. Point out patterns, trade-offs, or pitfalls a learner should take away from the change.

Only describe what is present in the commit. If something cannot be determined from the diff, say so.
""".strip()


ANALYSIS_SYSTEM_PROMPT = (
    "You are a senior software engineer and code reviewer. Analyze the provided repository code and commit history to give "
    + "insights about the codebase, architecture, development patterns, and suggestions for improvement. Keep your response "
    + "concise but comprehensive."
)


def truncate_prompt(prompt: str, limit: int = PROMPT_CHARACTER_LIMIT) -> str:
    """Cut a prompt to `limit` characters and append the truncation marker.

    The marker is appended after the cut, so a truncated prompt is slightly longer than `limit`.
    """

    if len(prompt) > limit:
        return prompt[:limit] + PROMPT_TRUNCATION_MARKER

    return prompt


def build_lesson_prompt(commit_record: CommitRecord) -> str:
    """Build the user prompt for a commit lesson.

    Raises:
        EmptyDiffError: If the commit has no diff content.
    """

    if not commit_record.diff_text:
        raise EmptyDiffError(sha=commit_record.sha)

    return truncate_prompt(f"Commit message: {commit_record.message}\n\n{commit_record.diff_text}")


def build_analysis_prompt(source_code: str, commit_history: str) -> str:
    """Build the user prompt for a whole-repository analysis from the source code and commit history documents."""

    combined_content: str = f"{source_code}\n\n---\n\n{commit_history}"

    return f"Please analyze this repository:\n\n{truncate_prompt(combined_content)}"
