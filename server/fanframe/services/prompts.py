import logging

from django.db import DatabaseError

from fanframe.models import SystemSetting

logger = logging.getLogger(__name__)

PROMPT_SETTING_KEY = "generation_prompt"

DEFAULT_PROMPT = """
Virtual try-on: dress the person from the first image in the jersey shown in
the second image, placed in the setting of the third image.

RULES:
- Preserve the person's face, body proportions and pose exactly
- Replace only the upper body clothing with the jersey
- Ensure realistic fabric folds and a natural fit
- Match lighting to the background environment
- Maintain photorealistic quality with sharp focus
"""


def get_generation_prompt():
    """Prompt from the `generation_prompt` setting, else the built-in default."""
    try:
        setting = SystemSetting.objects.filter(key=PROMPT_SETTING_KEY).first()
    except DatabaseError as exc:
        logger.error(f"Error fetching prompt: {exc}")
        return DEFAULT_PROMPT

    if setting is None or not setting.value.strip():
        return DEFAULT_PROMPT
    return setting.value
