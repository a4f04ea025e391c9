# StudyForge Source Package
"""
Core modules for the StudyForge study-material generator.
"""
