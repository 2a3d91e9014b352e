from .base import CaptionStyle, HighlightStyle, VideoStyle

# Line drawings read better filling the frame than drifting in a pan.
STICKFIGURE = VideoStyle(
    "stickfigure",
    "Stick Figure",
    description="Minimal line drawings: sentence segments, red karaoke, static fill-frame images.",
    segmentation="sentence",
    captions_enabled=True,
    min_words_per_caption=3,
    max_words_per_caption=6,
    caption=CaptionStyle(
        primary_color="&H00000000",
        outline_color="&H00FFFFFF",
        background_color="&H80FFFFFF",
        outline_width=2,
        shadow_depth=0,
        use_box=False,
    ),
    highlight=HighlightStyle(enabled=True, color="&H000000FF", use_box=True),
    pan_effect=False,
    zoom_to_fit=True,
)
