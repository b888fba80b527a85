"""Prompt templates and stored-prompt descriptions per generation kind."""

DEFAULT_ARTICLE_LENGTH = 800

ARTICLE_PROMPT = "Write an article based on the following prompt in {length} words: {prompt}"

BLOG_TITLE_PROMPT = "Generate 5 catchy blog titles for this topic: {prompt}"

RESUME_REVIEW_PROMPT = (
    "Review the following resume and provide constructive feedback, "
    "including strengths, weaknesses, and areas for improvement:\n\n{text}"
)

# Descriptions stored as the creation prompt for non-text operations
BACKGROUND_REMOVAL_DESCRIPTION = "Removed image background"
OBJECT_REMOVAL_DESCRIPTION = "Removed {label} from image"
RESUME_REVIEW_DESCRIPTION = "Resume Review"

# Cloudinary effects
BACKGROUND_REMOVAL_EFFECT = "background_removal"
OBJECT_REMOVAL_EFFECT = "gen_remove:prompt_{label}"


def article_max_tokens(length: int) -> int:
    """Token budget for an article of ``length`` words (roughly 4 tokens per 3 words, plus headroom)."""
    return max(256, int(length * 1.6))
