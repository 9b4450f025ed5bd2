"""Shared constants for wreckit."""

import re

WRECKIT_DIR = ".wreckit"
CONFIG_FILE = "config.yaml"
INDEX_FILE = "index.json"
PROMPTS_DIR = "prompts"

ITEM_FILE = "item.json"
RESEARCH_FILE = "research.md"
PLAN_FILE = "plan.md"
PRD_FILE = "prd.json"
PROGRESS_FILE = "progress.log"

SCHEMA_VERSION = 1

# Item directories are <NNN>-<slug> inside a section directory
ITEM_DIR_PATTERN = re.compile(r'^\d{3}-')
SECTION_PATTERN = re.compile(r'^[a-z][a-z0-9_-]*$')
MAX_SLUG_LEN = 50

PROMPT_NAMES = ("research", "plan", "implement")
