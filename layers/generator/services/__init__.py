# Generator Services
