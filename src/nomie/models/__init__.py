"""
Model access: provider clients, prompt templates and the task manager.
"""
