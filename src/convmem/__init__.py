"""convmem - In-process conversation memory for LLM assistants.

convmem keeps every user utterance, model response and skill event of a
running assistant in one bounded log, compacts that log as it grows, and
rebuilds the context views an LLM orchestrator sends with each request.

Key modules:

- :mod:`convmem.memory` - Event store, maintenance, threads, references and the
  :class:`~convmem.memory.manager.SessionMemory` facade
- :mod:`convmem.prompts` - Skill prompt catalogs used to seed the store
- :mod:`convmem.config` - YAML configuration (pydantic models)
- :mod:`convmem.cli` - Diagnostic command line (replay transcripts)
"""

__version__ = "0.1.0"
