"""Store-backed services for dataset construction and the trade memory loop."""
