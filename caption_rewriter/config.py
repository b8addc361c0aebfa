from __future__ import annotations

# ---------------------------
# Prompting
# ---------------------------
DEFAULT_SYSTEM_PROMPT = (
    "You are an expert reviewer and editor of image captions.\n"
    "For every caption you receive, produce a report with exactly three sections:\n"
    "1. Original caption analysis: point out factual mismatches with the image, omissions, "
    "vague wording, grammar and style problems.\n"
    "2. Rewrite notes: a short bullet list of the changes you made and why.\n"
    "3. Rewritten Caption: the final caption on its own, with nothing after it.\n"
    "Keep the language of the original caption. Do not invent details that cannot be "
    "verified from the image or the text."
)

CUSTOM_RULES_HEADER = "Additional rules:"

TEXT_REWRITE_PROMPT = (
    'Original caption: "{text}"\n\n'
    "Review and rewrite it strictly following the report format from the system instruction."
)

IMAGE_ANALYSIS_PROMPT = "Analyse this image."

IMAGE_WITH_TEXT_TASK = (
    'Caption provided by the user: "{text}"\n\n'
    "Task: following the system instruction, review and rewrite the caption above against "
    "the image content. Point out where the description disagrees with the image, misses "
    "something, or breaks the style rules."
)

IMAGE_ONLY_TASK = (
    "Task 1: find any caption text already present in the image (on-screen copy, subtitles, "
    'burned-in captions) and return it as "extractedOriginal". Return an empty string if '
    "there is none.\n"
    "Task 2: following the system instruction, look at the visual content and produce the "
    "full review and rewrite report."
)

JSON_RESPONSE_INSTRUCTIONS = (
    "Reply in JSON:\n"
    "{{\n"
    '  "extractedOriginal": "{original_hint}",\n'
    '  "rewritten": "the full report (analysis, rewrite notes and rewritten caption), '
    'keeping line breaks"\n'
    "}}"
)

GENERATION_TEMPERATURE = 0.3

# ---------------------------
# Models
# ---------------------------
# (label, model id). Routing to a provider happens through the provider registry.
MODEL_OPTIONS = [
    ("Gemini 3 Pro (preview, vision)", "gemini-3-pro-preview"),
    ("Gemini 2.5 Pro (vision)", "gemini-2.5-pro"),
    ("Gemini 2.5 Flash (vision)", "gemini-2.5-flash"),
    ("DeepSeek Chat (text only)", "deepseek-chat"),
    ("DeepSeek Reasoner (text only)", "deepseek-reasoner"),
    ("Kimi / Moonshot 8k (text only)", "moonshot-v1-8k"),
    ("Kimi / Moonshot 32k (text only)", "moonshot-v1-32k"),
]

# ---------------------------
# Batch processing
# ---------------------------
DEFAULT_CONCURRENCY = 3
UI_POLL_SECONDS = 0.5

# ---------------------------
# Spreadsheet import / export
# ---------------------------
CAPTION_HEADER_KEYWORDS = ("caption", "desc", "描述")
IMAGE_HEADER_KEYWORDS = ("path", "image", "img", "图片")

EXPORT_SHEET_TITLE = "Rewritten Captions"
EXPORT_HEADERS = [
    "ID",
    "Original Caption (Diff)",
    "Rewritten Caption (Diff)",
    "Image Path",
    "Status",
    "Error",
    "Rewritten Report",
]
EXPORT_COLUMN_WIDTHS = [30, 60, 60, 20, 10, 20, 80]
EXPORT_FILENAME_TEMPLATE = "caption_rewrites_{date}.xlsx"

DIFF_STYLES = {
    "added": {"color": "16A34A", "b": True},
    "removed": {"color": "DC2626", "b": True, "u": "single"},
}

# Report markers preceding the final caption, CJK and English variants.
REWRITTEN_MARKER_PATTERN = r"(?:改写caption|Rewritten Caption|改写后|Final Caption)\s*[:：]\s*([\s\S]+)$"

# ---------------------------
# History
# ---------------------------
HISTORY_STORAGE_KEY = "caption_rewriter_history"
HISTORY_FILENAME = "history.json"
HISTORY_LIMIT = 20
