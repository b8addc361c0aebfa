"""Caption rewriter: batch-rewrite captions with generative AI from a Streamlit app.

Modules are organized into:
- config: constants, prompts and model options
- settings: environment / TOML backed settings
- models, state: caption rows and the pure transitions applied to them
- processing: the batch worker pool
- providers: rewrite API clients behind a capability-tagged registry
- services: spreadsheet, PDF, image and diff helpers plus the rewrite transform
- utils: history storage and logging setup
- ui: Streamlit UI components and panels
"""

__version__ = "0.1.0"
