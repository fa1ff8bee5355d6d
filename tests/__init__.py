"""form-foundry test suite.

Unit tests sit at this level, one module per engine component. End-to-end
flows (wizard sessions, draft backends, CLI) live in ``integration/``.
Timing-dependent behavior is driven through ``ManualScheduler``.
"""
