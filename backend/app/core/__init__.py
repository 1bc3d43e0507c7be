# Core configuration and infrastructure
