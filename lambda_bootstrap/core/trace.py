from typing import Optional


class TraceId:
    """
    AWS X-Ray Trace ID format:
    Root=1-timestamp-randomuuid;Parent=parentid;Sampled=sampled
    """

    def __init__(self, root: str, parent: Optional[str] = None, sampled: Optional[str] = None):
        self.root = root
        self.parent = parent
        self.sampled = sampled

    @classmethod
    def parse(cls, header: str) -> "TraceId":
        """Parse a Lambda-Runtime-Trace-Id header string."""
        parts = {}
        for part in header.split(";"):
            if "=" in part:
                k, v = part.split("=", 1)
                parts[k.strip()] = v.strip()

        root = parts.get("Root", "")
        parent = parts.get("Parent")
        sampled = parts.get("Sampled")

        # Raw ID without Root= prefix.
        if not root and header and "=" not in header:
            root = header.strip()

        return cls(root=root, parent=parent, sampled=sampled)

    def __str__(self) -> str:
        """Generate the header-formatted string."""
        s = f"Root={self.root}"
        if self.parent:
            s += f";Parent={self.parent}"
        if self.sampled:
            s += f";Sampled={self.sampled}"
        return s
