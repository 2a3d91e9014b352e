from .base import CaptionStyle, HighlightStyle, VideoStyle

WW2 = VideoStyle(
    "ww2",
    "World War 2",
    description="Archival look: ~100-word segments, static shadowed captions, no pan.",
    segmentation="wordCount",
    words_per_segment=100,
    captions_enabled=True,
    min_words_per_caption=4,
    max_words_per_caption=6,
    caption=CaptionStyle(
        background_color="&H00000000",
        outline_width=4,
        shadow_depth=4,
        use_box=False,
    ),
    highlight=HighlightStyle(enabled=False, color="&H0000FFFF", use_box=False),
    pan_effect=False,
)
