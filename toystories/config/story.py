"""
Story generation constants for the Toys to Stories service.

Fixed contract values for the generated storybook plus the pacing values
used by the pipeline.
"""

import os

# Story contract constants
STORY_CONSTANTS = {
    "page_count": 6,
    "vocab_count": 4,
    "max_vocab_per_page": 1,
    "max_vocab_total": 4,
}

# Pipeline pacing (seconds). Courtesy delays before external calls are
# placeholders; real backoff comes from the retry decorators.
PIPELINE_CONSTANTS = {
    "composition_delay": float(os.getenv("TOYSTORIES_COMPOSITION_DELAY", "2.0")),
    "illustration_delay": float(os.getenv("TOYSTORIES_ILLUSTRATION_DELAY", "3.0")),
    "not_configured_delay": 2.0,
    "finalize_hold": 0.5,
}

# Description used when toy analysis throws instead of self-recovering
GENERIC_TOY_DESCRIPTION = "a beloved stuffed toy"

# Stock images used when a page has no generated illustration
DEFAULT_IMAGE_URLS = [
    "https://images.unsplash.com/photo-1753928578920-c3e936415a21?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080",
    "https://images.unsplash.com/photo-1573689705959-7786e029b31e?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080",
    "https://images.unsplash.com/photo-1485783522162-1dbb8ffcbe5b?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080",
    "https://images.unsplash.com/photo-1718138990279-97c54c2dd00e?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080",
    "https://images.unsplash.com/photo-1607948471407-3af873dda505?crop=entropy&cs=tinysrgb&fit=max&fm=jpg&q=80&w=1080",
]
