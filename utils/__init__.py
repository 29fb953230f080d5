# Practice Generation Utilities
from .practice_storage import (
    DocumentStore,
    PracticeStore,
    InMemoryDocumentStore,
    InMemoryPracticeStore,
    SupabaseDocumentStore,
    SupabasePracticeStore,
    GenerationLogger,
    generate_uuid
)

from .model_config import (
    ModelConfig,
    ModelProvider,
    GenerationSettings,
    ExtractionSettings,
    MODEL_CONFIGS,
    DEFAULT_MODEL
)

__all__ = [
    'DocumentStore',
    'PracticeStore',
    'InMemoryDocumentStore',
    'InMemoryPracticeStore',
    'SupabaseDocumentStore',
    'SupabasePracticeStore',
    'GenerationLogger',
    'generate_uuid',
    'ModelConfig',
    'ModelProvider',
    'GenerationSettings',
    'ExtractionSettings',
    'MODEL_CONFIGS',
    'DEFAULT_MODEL'
]
