"""Output: JSON, quiet, and rich-rendered views of a ServiceResult."""
