"""
Source readers: front-matter, Markdown bodies and the Gemfile.
"""
