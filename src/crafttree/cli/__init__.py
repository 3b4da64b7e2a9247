"""crafttree command line interface."""
