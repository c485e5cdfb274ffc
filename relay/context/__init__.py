"""Context engineering package for relay-assistant.

Provides:
- fact_extractor: deterministic extraction of durable user facts from messages
- user_facts: per-user persistence of those facts
- context_builder: the bounded prompt context assembled for each session
"""
