"""
Infrastructure layer: encryption, storage backends and transfers.
"""
