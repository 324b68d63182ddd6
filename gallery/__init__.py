"""
Caption gallery web application.

Serves a gallery of images with their user-submitted captions and lets
signed-in users vote on (or like) captions. Storage and identity live in a
hosted Postgres/auth provider; this package only queries it and renders.
"""
