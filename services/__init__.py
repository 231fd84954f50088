"""
Services package for NMF Live.

This package contains the stateful helpers behind the HTTP layer:
- Corpus store: labeled feature snapshots appended to a CSV file
- Request tracker: last /nmf/state poll time, used to throttle idle capture
"""
