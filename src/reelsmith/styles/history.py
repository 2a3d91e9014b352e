from .base import CaptionStyle, HighlightStyle, VideoStyle

HISTORY = VideoStyle(
    "history",
    "History",
    description="Documentary look: sentence segments, karaoke captions, slow pan.",
    segmentation="sentence",
    captions_enabled=True,
    min_words_per_caption=3,
    max_words_per_caption=6,
    caption=CaptionStyle(use_box=False),
    highlight=HighlightStyle(enabled=True, color="&H00FF008B", use_box=True),
    pan_effect=True,
)
