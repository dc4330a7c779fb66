"""Pure address arithmetic and the error taxonomy."""
