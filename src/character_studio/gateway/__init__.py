"""
Character Studio Gateway

The API that the web UI talks to. It handles:
- Firebase ID token verification
- Character records in Firestore and their images in Cloud Storage
- Character analysis and image generation through Gemini
- The simulated batch-training lifecycle

The gateway does no ML work of its own - it authenticates and orchestrates.
"""
