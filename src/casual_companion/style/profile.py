from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from casual_companion.models import StyleVector


class StyleProfile(BaseModel):
    """
    Per-user style, kept as an exponential moving average of analyzed turns.

    The first sample is taken as-is; later samples move each dimension by
    ``alpha`` towards the new value.
    """

    style: Optional[StyleVector] = None
    samples: int = 0
    last_updated: Optional[datetime] = None

    def update(self, sample: StyleVector, alpha: float = 0.3) -> StyleVector:
        if self.style is None:
            self.style = sample.model_copy()
        else:
            current = self.style.dimensions()
            merged = dict(current)
            for key, value in sample.dimensions().items():
                if key in current:
                    merged[key] = current[key] * (1 - alpha) + value * alpha
                else:
                    merged[key] = value
            self.style = StyleVector(**merged)

        self.samples += 1
        self.last_updated = datetime.now()
        return self.style
