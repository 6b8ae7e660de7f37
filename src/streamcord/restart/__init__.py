"""
Process restart support.

- **restart_correlator.py**: After a ``/forcerestart``, finds the command's
  response in the admin channel and replies with the time the restart took.
- **runtime_control.py**: Restart/shutdown requests shared between the
  commands and the process entry point.
"""
