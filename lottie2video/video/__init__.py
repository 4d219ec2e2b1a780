"""Frame partitioning, segment encoding, merging and loop transcoding"""
