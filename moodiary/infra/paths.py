# moodiary/infra/paths.py
from pathlib import Path
from moodiary.core.config import BASE_DIR, PROFILE_DIR

CONF_DIR = BASE_DIR / "moodiary" / "conf"
INSTRUCT_DIR = CONF_DIR / "instruct"

PROMPTS_SYSTEM_PATH     = INSTRUCT_DIR / "emotion-system-prompt.txt"
PROMPTS_TEXT_PATH       = INSTRUCT_DIR / "text-emotion-prompt.txt"
PROMPTS_IMAGE_PATH      = INSTRUCT_DIR / "image-emotion-prompt.txt"
PROMPTS_INTEGRATED_PATH = INSTRUCT_DIR / "integrated-emotion-prompt.txt"

KEY_PATH = CONF_DIR / "key-togetherai.txt"


def ensure_profile_dir(base_dir: Path = PROFILE_DIR) -> Path:
    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir
