"""CKAN datastore source for the dvf visualisation framework."""
