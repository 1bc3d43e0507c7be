# Huddle backend
