"""HTTP applications: the file server and the reload trigger listener."""
