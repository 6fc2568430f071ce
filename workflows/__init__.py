"""
Workflows Package — All chain workflows live here.

Each subdirectory is a self-contained workflow that implements BaseWorkflow.
The WorkflowRegistry auto-discovers workflows by scanning this directory.

Convention:
  workflows/
    my_workflow/
      __init__.py          # Exports: workflow = MyWorkflow()
      manifest.yaml        # Name, triggers, documented settings
      workflow.py          # BaseWorkflow subclass + trigger handlers
      steps.py             # Pipeline steps
      models.py            # Config schema (pydantic)
      config.example.json  # Sample config
      tests/
"""
