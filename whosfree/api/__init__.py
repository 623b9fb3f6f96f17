"""HTTP surface for whosfree."""
