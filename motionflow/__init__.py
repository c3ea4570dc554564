"""
motionflow - interactive text generation for Bündnis 90/Die Grünen

Package structure:
    - config: central configuration (AppConfig, load_config)
    - engine: graph workflow engine with suspend/resume
    - generation: interactive multi-turn generation workflow
    - routing: intent classification, multi-intent dispatch, chat orchestration
    - adapters: LLM, web search and crawl ports
    - sessions, prompting, enrichment: default collaborators
    - integrations: LangFuse tracing
    - utils: logging, exceptions, JSON helpers
"""

__version__ = "1.0.0"
