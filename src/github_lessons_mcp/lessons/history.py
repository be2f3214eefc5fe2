from github_lessons_mcp.lessons.models import CommitCollection, CommitFileStat, CommitRecord

HISTORY_PATCH_CHARACTER_LIMIT = 2000


def render_commit_file(commit_file: CommitFileStat) -> list[str]:
    """Render a changed file. Patches of `HISTORY_PATCH_CHARACTER_LIMIT` characters or more are replaced by their size."""

    lines: list[str] = [
        f"### {commit_file.filename}",
        f"- Status: {commit_file.status or 'unknown'}",
        f"- Additions: +{commit_file.additions}, Deletions: -{commit_file.deletions}",
    ]

    if commit_file.patch and commit_file.patch_length < HISTORY_PATCH_CHARACTER_LIMIT:
        lines.extend(["- Changes:", "```diff", commit_file.patch, "```"])
    elif commit_file.patch:
        lines.append(f"- Changes: [Large diff truncated - {commit_file.patch_length} characters]")

    return lines


def render_commit(commit_record: CommitRecord) -> str:
    lines: list[str] = [f"## Commit: {commit_record.short_sha}"]

    if commit_record.author_name or commit_record.author_email:
        lines.append(f"**Author:** {commit_record.author_name or 'Unknown'} <{commit_record.author_email or 'unknown'}>")

    if commit_record.date:
        lines.append(f"**Date:** {commit_record.date.isoformat()}")

    lines.append(f"**Message:** {commit_record.message}")

    if commit_record.files:
        lines.extend([f"**Files Changed:** {len(commit_record.files)}", "**Changes:**"])

        for commit_file in commit_record.files:
            lines.append("")
            lines.extend(render_commit_file(commit_file=commit_file))

    return "\n".join(lines)


def render_commit_history(collection: CommitCollection) -> str:
    """Render every commit of the collection, with its metadata and patches, as a markdown document."""

    sections: list[str] = [f"# Commit History for {collection.repository.full_name}"]

    sections.extend(render_commit(commit_record=commit_record) for commit_record in collection.records)

    return "\n\n---\n\n".join(sections) + "\n"
