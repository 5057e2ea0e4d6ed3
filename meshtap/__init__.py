"""meshtap - render live service-mesh tap events as lines or JSON."""
