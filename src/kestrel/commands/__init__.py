"""
Command discovery, slash payload building, reconciliation and dispatch.

- **definition.py**: Typed command definitions and load-time validation.
- **loader.py**: Walks the definition tree and fills the registries.
- **builder.py**: Builds one umbrella slash command per category.
- **normalizer.py** / **differ.py**: Canonical forms and one-way structural diff.
- **remote.py**: Registered-command projections and the HTTP access wrapper.
- **reconciler.py**: Minimal add/update/delete plans and their application.
- **router.py**: Text and slash dispatch with cooldowns.
- **lookup.py**: Name and alias lookups for help output.
"""
