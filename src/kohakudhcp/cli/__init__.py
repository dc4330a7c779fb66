"""HakuDHCP command line interface."""
