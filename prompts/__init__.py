# Prompts module initialization

# Practice Generation Prompts
from .practice_prompts import (
    PromptBuilder,
    build_practice_prompt,
    select_prompt_tier,
    SYSTEM_PROMPT,
    OUTPUT_SCHEMA_INSTRUCTIONS
)

__all__ = [
    'PromptBuilder',
    'build_practice_prompt',
    'select_prompt_tier',
    'SYSTEM_PROMPT',
    'OUTPUT_SCHEMA_INSTRUCTIONS'
]
