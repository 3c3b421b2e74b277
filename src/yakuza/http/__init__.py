"""HTTP access for agent tasks: logged requests over a shared cookie jar."""
