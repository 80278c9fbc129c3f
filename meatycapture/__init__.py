"""Local JSON store for meatycapture settings, projects, and field options.

Layout (under MEATYCAPTURE_CONFIG_DIR, default ~/.meatycapture):

    config.json               global settings (default_project, api_url)
    projects.json             project registry
    fields.json               global field options (seeded on first read)
    fields/<project_id>.json  project-scoped field options

All writes go through atomic_write (temp file + os.replace). There is no
cross-process lock: concurrent invocations are last-writer-wins per file.
"""

__version__ = "0.1.0"
