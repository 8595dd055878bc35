"""Django project package for the dataviz site."""
