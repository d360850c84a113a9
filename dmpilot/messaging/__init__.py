"""Read and annotate access to chats, messages, user profiles and FAQs."""
