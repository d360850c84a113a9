"""Inbox triage agent: categorize, match FAQs, decide, and stage suggestions."""
