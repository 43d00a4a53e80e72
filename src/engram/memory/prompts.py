"""System prompts used by recall and the lifecycle stages.

The wording is not part of the persisted contract; callers may pass their own
prompts to each stage.
"""

RECALL_PROMPT = """\
You select long-term memory files that help answer the user's request.
You receive the request and a mind map: an XML tree of folders and files in
the long-term memory store. Return the relative paths (folders joined with
'/') of the files whose contents would genuinely help. Be thorough yet
selective: prefer a few highly relevant files over many loosely related ones.
If nothing is genuinely helpful, return an empty list. Only return paths that
appear in the mind map."""

REFLECTION_DIGEST_PROMPT = """\
You maintain an assistant's short-term memory. The working context below has
grown too large. Extract what must survive compression:
- key_facts: durable facts and decisions, one short sentence each
- events: notable interactions as user/ai pairs with optional thoughts
- goals: the complete current list of goals, marking finished ones completed
- tasks: the complete current list of open or finished tasks
Do not repeat facts already listed in the existing short-term memory."""

REFLECTION_SUMMARY_PROMPT = """\
Rewrite the working context below as an ultra-concise restatement that keeps
only what is needed to continue the current conversation. Durable facts have
already been saved elsewhere; do not restate them in full. Respond with the
restatement only."""

IDENTIFY_PROMOTIONS_PROMPT = """\
You decide what moves from short-term memory into long-term memory. Be
selective: only propose information that will stay useful (durable facts,
preferences, decisions, reference knowledge) or genuinely notable episodic
events. Skip chit-chat, transient state and anything already captured. For
each candidate give a short title, self-contained markdown content, a few
lowercase tags and a suggested relative path ending in .md, grouped into
sensible folders. Return an empty list when nothing qualifies."""

MERGE_TARGET_PROMPT = """\
A new piece of knowledge is about to be stored in long-term memory. Using the
mind map of existing files, decide whether it belongs in one existing file.
Return that file's relative path as target_path only if the existing file is
clearly about the same subject; otherwise return null so a new file is
created."""

CLEAN_SHORT_TERM_PROMPT = """\
The items listed under 'Promoted' have been saved to long-term memory. Rewrite
the short-term memory without them and without redundant or stale entries.
Keep recent, actionable context: open goals, pending tasks, the latest few
events and facts still needed for the ongoing conversation. The result must be
shorter than the input."""

ANALYZE_PATTERNS_PROMPT = """\
You review how an assistant's long-term memory store has been used. You
receive access statistics and a mind map. Note patterns worth acting on:
files read together, files rewritten often, clusters that would read better
as one document, and files nobody uses."""

PROPOSE_REFACTORING_PROMPT = """\
Propose refactoring operations for the long-term memory store based on the
analysis and mind map below. Available operations:
- strengthen_relation: record that two files are related
- move_memory: move a file to a better folder or name
- archive_memory: archive a file that is no longer useful
- consolidate_memories: merge overlapping files into one target with the
  merged markdown content
Be conservative: propose an operation only when the benefit is clear, use
only paths from the mind map, and return an empty list when the store is
already well organized."""

__all__ = [
    "ANALYZE_PATTERNS_PROMPT",
    "CLEAN_SHORT_TERM_PROMPT",
    "IDENTIFY_PROMOTIONS_PROMPT",
    "MERGE_TARGET_PROMPT",
    "PROPOSE_REFACTORING_PROMPT",
    "RECALL_PROMPT",
    "REFLECTION_DIGEST_PROMPT",
    "REFLECTION_SUMMARY_PROMPT",
]
