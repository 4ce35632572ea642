import random
from typing import Optional, Sequence

CUTE_STARTUP_TEMPLATES = (
    "Ka-pow! {name}, I think I did it… hopefully 😅",
    "🔥 {name}, I managed to turn it on… not sure how, but hey!",
    "Zap! {name}, everything's up! Did I do that right?",
    "Ka-blam! {name}, all done… I think? Maybe?",
    "✨ {name}, mission complete… I think I did okay 😳",
    "💥 {name}, I did something… hopefully the right thing 😅",
    "⚙️ {name}, I flipped the switches and… it didn't break! Yay?",
    "Zap! {name}, I did it! I'm 60% sure that's fine 😅",
)

STARTUP_TEMPLATE = "✅ {name}, the server is now online! (took {elapsed:.0f}s)"
TIMEOUT_TEMPLATE = "😅 {name}, the server is taking longer than usual. Please check it manually"


class StartupMessages:
    """Text for startup notifications. With cute=True one template is picked at random."""

    def __init__(self, cute: bool = False, templates: Sequence[str] = CUTE_STARTUP_TEMPLATES,
                 rng: Optional[random.Random] = None):
        self.cute = cute
        self.templates = tuple(templates)
        self.rng = rng or random.Random()

    def success(self, name: str, elapsed: float) -> str:
        if self.cute and self.templates:
            return self.rng.choice(self.templates).format(name=name, elapsed=elapsed)
        return STARTUP_TEMPLATE.format(name=name, elapsed=elapsed)

    def timeout(self, name: str) -> str:
        return TIMEOUT_TEMPLATE.format(name=name)
