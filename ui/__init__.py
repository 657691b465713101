"""Terminal presentation of chat messages.

The renderer turns parsed segments into rich renderables; the typewriter
display animates a reply on top of it.
"""
